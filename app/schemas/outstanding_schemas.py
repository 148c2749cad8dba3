from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from app.schemas.entry_schemas import PaymentRecordOut


class OutstandingCreate(BaseModel):
    user_id: int
    outstanding_amount: int = Field(gt=0)
    description: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None


class OutstandingOut(BaseModel):
    record_id: int
    serial_number: Optional[str] = None
    record_number: int
    user_id: int
    user_name: str
    user_mobile: Optional[str] = None

    outstanding_amount: int
    received_amount: int
    pending_amount: int
    status: str
    payments: List[PaymentRecordOut] = []

    description: str
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None

    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OutstandingPaymentOut(BaseModel):
    record_id: int
    serial_number: Optional[str] = None
    user_id: int
    user_name: str
    payment_index: int
    date: Optional[str] = None
    amount: int
    mode: Optional[str] = None
    file_url: Optional[str] = None
    receipt_no: Optional[str] = None
    updated_by: Optional[str] = None


class ReceiptBackfillOut(BaseModel):
    assigned: int
    registered: int
    records_updated: int
