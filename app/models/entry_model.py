# app/models/entry_model.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    Index,
)
from sqlalchemy.sql import func
from app.utils.database import Base


class Entry(Base):
    """A boli (pledge). Its payments live inside the row as an ordered JSON list."""

    __tablename__ = "entries"

    __table_args__ = (
        Index("ix_entries_status", "status"),
        Index("ix_entries_entry_status", "entry_status"),
        Index("ix_entries_user_status", "user_id", "entry_status"),
        Index("ix_entries_auction_date", "auction_date"),
    )

    entry_id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    user_name = Column(String(150), nullable=False)
    user_mobile = Column(String(20), nullable=True)

    description = Column(Text, nullable=False)
    occasion = Column(String(200), nullable=False, server_default="")
    bedi_number = Column(String(20), nullable=False, server_default="1")
    serial_number = Column(Integer, nullable=False, index=True)
    auction_date = Column(Date, nullable=False)

    # whole currency units, never fractional
    amount = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)
    total_amount = Column(Integer, nullable=False)

    # derived from payments on every write
    received_amount = Column(Integer, nullable=False, default=0)
    pending_amount = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending / partial / full

    payments = Column(JSON, nullable=False, default=list)
    receipt_numbers = Column(Text, nullable=False, default="")
    deleted_receipt_numbers = Column(Text, nullable=False, default="")

    # soft delete: active / deleted
    entry_status = Column(String(20), nullable=False, default="active")

    # optimistic concurrency: every UPDATE is conditional on this value
    version = Column(Integer, nullable=False)

    created_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_due(self) -> int:
        return self.total_amount

    @property
    def is_deleted(self) -> bool:
        return self.entry_status == "deleted"
