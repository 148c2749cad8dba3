from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.sql import func
from app.utils.database import Base


class IssuedReceiptNumber(Base):
    """
    Registry of every receipt number handed out. Written in the same
    transaction as the payment that carries the number, so a unique violation
    here means another writer claimed it first.
    """

    __tablename__ = "issued_receipt_numbers"

    __table_args__ = (
        Index("ix_issued_receipt_year", "year"),
    )

    receipt_id = Column(Integer, primary_key=True, index=True)
    receipt_no = Column(String(50), unique=True, nullable=False)

    year = Column(Integer, nullable=False)
    number = Column(Integer, nullable=False)
    stream = Column(String(20), nullable=False)  # boli / outstanding

    issued_at = Column(DateTime, server_default=func.now())
