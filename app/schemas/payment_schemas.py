from pydantic import BaseModel, Field, field_validator
import datetime as dt
from typing import Optional, Literal

PaymentMode = Literal["cash", "upi", "cheque", "netbanking", "advance_payment"]


class PaymentCreate(BaseModel):
    date: dt.date
    amount: int = Field(gt=0)
    mode: PaymentMode = "cash"
    file_url: Optional[str] = None

    @field_validator("mode", mode="before")
    def lower_mode(cls, v):
        return str(v).strip().lower() if v is not None else v

    @field_validator("file_url", mode="before")
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class PaymentEdit(BaseModel):
    date: Optional[dt.date] = None
    amount: Optional[int] = Field(default=None, gt=0)
    mode: Optional[PaymentMode] = None
    file_url: Optional[str] = None

    @field_validator("mode", mode="before")
    def lower_mode(cls, v):
        return str(v).strip().lower() if v is not None else v
