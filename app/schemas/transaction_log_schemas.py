from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class TransactionLogOut(BaseModel):
    log_id: int
    entry_id: int
    record_kind: str
    user_id: int
    username: str
    transaction_type: str
    amount: int
    description: str
    details: dict = {}
    date: date
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True
