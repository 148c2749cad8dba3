# app/services/advance_ledger.py
"""
Advance payment balance, derived from two append-only tables:

    balance(user) = max(0, sum(deposits) - sum(usages))

Nothing stores a running balance. Callers that are about to draw must ask
again right before writing the usage row.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.core.exceptions import (
    InsufficientAdvanceBalanceError,
    LedgerValidationError,
    RecordNotFoundError,
)
from app.models.advance_payment_model import AdvancePayment, AdvancePaymentUsage
from app.models.user_model import User
from app.services import transaction_log
from app.services.receipt_allocator import allocate_receipt_number
from app.utils.receipt_numbers import ReceiptStream

logger = logging.getLogger(__name__)

DEPOSIT_MODES = ("cash", "upi", "cheque", "netbanking")


def total_deposits(db: Session, user_id: int) -> int:
    return int(
        db.query(func.coalesce(func.sum(AdvancePayment.amount), 0))
        .filter(AdvancePayment.user_id == user_id)
        .scalar()
    )


def total_usages(db: Session, user_id: int) -> int:
    return int(
        db.query(func.coalesce(func.sum(AdvancePaymentUsage.amount), 0))
        .filter(AdvancePaymentUsage.user_id == user_id)
        .scalar()
    )


def raw_balance(db: Session, user_id: int) -> int:
    """Unclamped deposits minus usages. Negative only if the ledger was corrupted."""
    return total_deposits(db, user_id) - total_usages(db, user_id)


def remaining_balance(db: Session, user_id: int) -> int:
    return max(0, raw_balance(db, user_id))


def ensure_sufficient(db: Session, user_id: int, amount: int) -> int:
    available = remaining_balance(db, user_id)
    if available < amount:
        raise InsufficientAdvanceBalanceError(
            f"Insufficient advance balance. Available: ₹{available:,}, Required: ₹{amount:,}",
            extra={"available": available, "required": amount},
        )
    return available


def add_usage(
        db: Session,
        *,
        user_id: int,
        entry_id: int,
        amount: int,
        on_date: date,
        actor: Actor,
) -> AdvancePaymentUsage:
    """
    Re-derives the balance, then adds the usage row to the session.

    Runs inside the caller's transaction; the caller commits.
    """
    ensure_sufficient(db, user_id, amount)

    usage = AdvancePaymentUsage(
        user_id=user_id,
        entry_id=entry_id,
        amount=amount,
        date=on_date,
        created_by=actor.username,
    )
    db.add(usage)
    db.flush()

    # a concurrent draw that committed after our check shows up here
    if raw_balance(db, user_id) < 0:
        raise InsufficientAdvanceBalanceError(
            "Advance balance was consumed by another payment. Please retry.",
            extra={"available": remaining_balance(db, user_id), "required": amount},
        )

    logger.info("advance usage: user=%s entry=%s amount=%s", user_id, entry_id, amount)
    return usage


# =================================================
# Deposits
# =================================================
def create_deposit(
        db: Session,
        *,
        user_id: int,
        amount: int,
        on_date: date,
        payment_mode: str,
        actor: Actor,
        attachment_url: Optional[str] = None,
) -> AdvancePayment:
    if amount is None or amount <= 0:
        raise LedgerValidationError("Amount must be positive")
    if payment_mode not in DEPOSIT_MODES:
        raise LedgerValidationError(f"Unsupported payment mode for advance deposit: {payment_mode}")
    if on_date > date.today():
        raise LedgerValidationError("Advance payment date cannot be in the future")

    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise RecordNotFoundError("User not found")

    try:
        receipt_no = allocate_receipt_number(db, ReceiptStream.BOLI, on_date)

        deposit = AdvancePayment(
            user_id=user.user_id,
            user_name=user.name,
            user_mobile=user.mobile,
            date=on_date,
            amount=amount,
            payment_mode=payment_mode,
            attachment_url=attachment_url,
            receipt_no=receipt_no,
            created_by=actor.username,
        )
        db.add(deposit)
        db.flush()

        transaction_log.append_log(
            db,
            entry_id=deposit.advance_id,
            actor=actor,
            transaction_type=transaction_log.ADVANCE_DEPOSIT,
            amount=amount,
            description=f"Advance payment of ₹{amount:,} received from {user.name}",
            details={
                "userId": user.user_id,
                "date": on_date,
                "paymentMode": payment_mode,
                "receiptNo": receipt_no,
            },
            record_kind=transaction_log.KIND_ADVANCE,
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(deposit)
    return deposit


def list_deposits(
        db: Session,
        user_id: Optional[int] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
):
    q = db.query(AdvancePayment)
    if user_id is not None:
        q = q.filter(AdvancePayment.user_id == user_id)
    if from_date is not None:
        q = q.filter(AdvancePayment.date >= from_date)
    if to_date is not None:
        q = q.filter(AdvancePayment.date <= to_date)
    return q.order_by(AdvancePayment.date.desc(), AdvancePayment.advance_id.desc()).all()


def list_usages(db: Session, user_id: Optional[int] = None, entry_id: Optional[int] = None):
    q = db.query(AdvancePaymentUsage)
    if user_id is not None:
        q = q.filter(AdvancePaymentUsage.user_id == user_id)
    if entry_id is not None:
        q = q.filter(AdvancePaymentUsage.entry_id == entry_id)
    return q.order_by(AdvancePaymentUsage.usage_id.desc()).all()
