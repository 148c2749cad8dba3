from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, JSON, Index
)
from sqlalchemy.sql import func
from app.utils.database import Base


class TransactionLog(Base):
    __tablename__ = "transaction_logs"

    __table_args__ = (
        Index("ix_transaction_logs_kind_entry", "record_kind", "entry_id"),
    )

    log_id = Column(Integer, primary_key=True, index=True)

    entry_id = Column(Integer, nullable=False, index=True)
    record_kind = Column(String(20), nullable=False, default="entry")  # entry / outstanding / advance

    user_id = Column(Integer, nullable=False)
    username = Column(String(100), nullable=False)

    # credit / debit / update_entry / update_payment / advance_deposit
    transaction_type = Column(String(30), nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=False)
    details = Column(JSON, nullable=False, default=dict)

    date = Column(Date, nullable=False)
    timestamp = Column(DateTime, server_default=func.now(), nullable=False)
