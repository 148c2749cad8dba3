from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, Literal


class AdvancePaymentCreate(BaseModel):
    user_id: int
    date: date
    amount: int = Field(gt=0)
    payment_mode: Literal["cash", "upi", "cheque", "netbanking"] = "cash"
    attachment_url: Optional[str] = None


class AdvancePaymentOut(BaseModel):
    advance_id: int
    user_id: int
    user_name: str
    user_mobile: Optional[str] = None
    date: date
    amount: int
    payment_mode: str
    attachment_url: Optional[str] = None
    receipt_no: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdvanceUsageOut(BaseModel):
    usage_id: int
    user_id: int
    entry_id: int
    amount: int
    date: date
    created_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
