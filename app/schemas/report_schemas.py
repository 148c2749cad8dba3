from pydantic import BaseModel
from typing import Dict


class DailyPaymentsOut(BaseModel):
    year: int
    total: int
    days: Dict[str, int]


class UserSummaryOut(BaseModel):
    user_id: int
    user_name: str
    entries: int
    total_amount: int
    received_amount: int
    pending_amount: int
    advance_balance: int
