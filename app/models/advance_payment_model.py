from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, ForeignKey, Index
)
from sqlalchemy.sql import func
from app.utils.database import Base


class AdvancePayment(Base):
    """Money deposited before it is tied to any pledge. Rows are never updated."""

    __tablename__ = "advance_payments"

    advance_id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    user_name = Column(String(150), nullable=False)
    user_mobile = Column(String(20), nullable=True)

    date = Column(Date, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    payment_mode = Column(String(20), nullable=False)  # cash / upi / cheque / netbanking
    attachment_url = Column(Text, nullable=True)
    receipt_no = Column(String(50), nullable=True, index=True)

    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class AdvancePaymentUsage(Base):
    """A draw against a user's advance balance to pay a specific entry."""

    __tablename__ = "advance_payment_usage"

    __table_args__ = (
        Index("ix_advance_usage_user_entry", "user_id", "entry_id"),
    )

    usage_id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    entry_id = Column(Integer, ForeignKey("entries.entry_id"), nullable=False)

    amount = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)

    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
