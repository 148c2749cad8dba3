from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional, List


class PaymentRecordOut(BaseModel):
    date: str
    amount: int
    mode: str
    file_url: Optional[str] = None
    receipt_no: Optional[str] = None
    updated_by: Optional[str] = None
    status: Optional[str] = None  # "deleted" while the owning entry is soft-deleted


class EntryCreate(BaseModel):
    user_id: int
    description: str = Field(min_length=1)
    amount: int = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    auction_date: date
    occasion: str = ""
    bedi_number: str = "1"

    @field_validator("description", mode="before")
    def strip_description(cls, v):
        return str(v).strip() if v is not None else v


class EntryUpdate(BaseModel):
    user_id: Optional[int] = None
    description: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=1)
    auction_date: Optional[date] = None
    occasion: Optional[str] = None
    bedi_number: Optional[str] = None


class EntryOut(BaseModel):
    entry_id: int
    user_id: int
    user_name: str
    user_mobile: Optional[str] = None

    description: str
    occasion: str
    bedi_number: str
    serial_number: int
    auction_date: date

    amount: int
    quantity: int
    total_amount: int
    received_amount: int
    pending_amount: int
    status: str

    payments: List[PaymentRecordOut] = []
    receipt_numbers: str = ""
    deleted_receipt_numbers: str = ""
    entry_status: str

    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
