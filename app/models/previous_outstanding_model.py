# app/models/previous_outstanding_model.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
    JSON,
    ForeignKey,
)
from sqlalchemy.sql import func
from app.utils.database import Base


class PreviousOutstandingRecord(Base):
    """Balance carried over from before the ledger existed. Same payment shape as Entry."""

    __tablename__ = "previous_outstanding_records"

    record_id = Column(Integer, primary_key=True, index=True)

    serial_number = Column(String(30), nullable=True, unique=True)  # PO-YYYY-NNN
    record_number = Column(Integer, nullable=False)

    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    user_name = Column(String(150), nullable=False)
    user_mobile = Column(String(20), nullable=True)

    outstanding_amount = Column(Integer, nullable=False)
    received_amount = Column(Integer, nullable=False, default=0)
    pending_amount = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")

    payments = Column(JSON, nullable=False, default=list)

    description = Column(Text, nullable=False, default="Previous Outstanding Amount")
    attachment_url = Column(Text, nullable=True)
    attachment_name = Column(String(255), nullable=True)

    version = Column(Integer, nullable=False)

    created_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_due(self) -> int:
        return self.outstanding_amount

    @property
    def is_deleted(self) -> bool:
        return False
