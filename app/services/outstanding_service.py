# app/services/outstanding_service.py
"""
Previous-outstanding records: balances carried over from before the ledger.

Payments against them go through ``payment_recorder`` with ``kind=OUTSTANDING``
and draw receipt numbers from the outstanding blocks.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.actor import Actor, require_writer
from app.core.config import OUTSTANDING_SERIAL_PREFIX
from app.core.exceptions import LedgerValidationError, RecordNotFoundError
from app.models.previous_outstanding_model import PreviousOutstandingRecord
from app.models.user_model import User
from app.services import payment_recorder, transaction_log
from app.services.receipt_allocator import allocate_receipt_number, register_existing
from app.utils.ledger_math import STATUS_PENDING
from app.utils.notifications import NotificationService
from app.utils.receipt_numbers import ReceiptStream

logger = logging.getLogger(__name__)


def _next_serial(db: Session, year: int) -> str:
    prefix = f"{OUTSTANDING_SERIAL_PREFIX}-{year}-"
    serials = (
        db.query(PreviousOutstandingRecord.serial_number)
        .filter(PreviousOutstandingRecord.serial_number.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (s,) in serials:
        tail = s[len(prefix):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return f"{prefix}{highest + 1:03d}"


def _next_record_number(db: Session) -> int:
    return int(
        db.query(func.coalesce(func.max(PreviousOutstandingRecord.record_number), 0)).scalar()
    ) + 1


def create_record(
        db: Session,
        *,
        user_id: int,
        outstanding_amount: int,
        actor: Actor,
        description: Optional[str] = None,
        attachment_url: Optional[str] = None,
        attachment_name: Optional[str] = None,
) -> PreviousOutstandingRecord:
    require_writer(actor)

    if outstanding_amount is None or outstanding_amount <= 0:
        raise LedgerValidationError("Outstanding amount must be greater than ₹0")

    try:
        user = db.query(User).filter(User.user_id == user_id).first()
        if not user:
            raise RecordNotFoundError("User not found")

        record = PreviousOutstandingRecord(
            serial_number=_next_serial(db, date.today().year),
            record_number=_next_record_number(db),
            user_id=user.user_id,
            user_name=user.name,
            user_mobile=user.mobile,
            outstanding_amount=outstanding_amount,
            received_amount=0,
            pending_amount=outstanding_amount,
            status=STATUS_PENDING,
            payments=[],
            description=(description or "").strip() or "Previous Outstanding Amount",
            attachment_url=attachment_url,
            attachment_name=attachment_name,
            created_by=actor.username,
        )
        db.add(record)
        db.flush()

        transaction_log.append_log(
            db,
            entry_id=record.record_id,
            actor=actor,
            transaction_type=transaction_log.CREDIT,
            amount=outstanding_amount,
            description=f"Previous outstanding {record.serial_number} of ₹{outstanding_amount:,} for {user.name}",
            details={"serialNumber": record.serial_number, "recordNumber": record.record_number},
            record_kind=transaction_log.KIND_OUTSTANDING,
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(record)
    logger.info("outstanding record %s created for user %s", record.serial_number, user.user_id)
    return record


def record_payment(
        db: Session,
        record_id: int,
        *,
        amount: int,
        payment_date: date,
        mode: str,
        actor: Actor,
        file_url: Optional[str] = None,
        notifier=NotificationService,
):
    return payment_recorder.record_payment(
        db,
        record_id,
        amount=amount,
        payment_date=payment_date,
        mode=mode,
        actor=actor,
        file_url=file_url,
        kind=payment_recorder.OUTSTANDING,
        notifier=notifier,
    )


def edit_payment(
        db: Session,
        record_id: int,
        index: int,
        *,
        actor: Actor,
        payment_date: Optional[date] = None,
        amount: Optional[int] = None,
        mode: Optional[str] = None,
        file_url: Optional[str] = None,
):
    return payment_recorder.edit_payment(
        db,
        record_id,
        index,
        actor=actor,
        payment_date=payment_date,
        amount=amount,
        mode=mode,
        file_url=file_url,
        kind=payment_recorder.OUTSTANDING,
    )


def delete_payment(db: Session, record_id: int, index: int, *, actor: Actor):
    return payment_recorder.delete_payment(db, record_id, index, actor=actor, kind=payment_recorder.OUTSTANDING)


def get_record(db: Session, record_id: int) -> PreviousOutstandingRecord:
    return payment_recorder.load_target(db, payment_recorder.OUTSTANDING, record_id)


def list_records(db: Session, user_id: Optional[int] = None, status: Optional[str] = None):
    q = db.query(PreviousOutstandingRecord)
    if user_id is not None:
        q = q.filter(PreviousOutstandingRecord.user_id == user_id)
    if status:
        q = q.filter(PreviousOutstandingRecord.status == status.lower())
    return q.order_by(PreviousOutstandingRecord.record_id.desc()).all()


def list_payments(db: Session, user_id: Optional[int] = None) -> List[dict]:
    """Every payment of every record, flattened, newest payment date first."""
    out = []
    for record in list_records(db, user_id=user_id):
        for index, p in enumerate(record.payments or []):
            out.append({
                "record_id": record.record_id,
                "serial_number": record.serial_number,
                "user_id": record.user_id,
                "user_name": record.user_name,
                "payment_index": index,
                "date": p.get("date"),
                "amount": int(p.get("amount") or 0),
                "mode": p.get("mode"),
                "file_url": p.get("file_url"),
                "receipt_no": p.get("receipt_no"),
                "updated_by": p.get("updated_by"),
            })
    out.sort(key=lambda r: (r["date"] or "", r["record_id"], r["payment_index"]), reverse=True)
    return out


def backfill_receipts(db: Session, *, actor: Actor) -> dict:
    """
    Gives outstanding-stream receipt numbers to payments recorded without one,
    oldest payment date first. Numbers already present are registered so they
    are never issued again. One commit for the whole run.
    """
    require_writer(actor)

    assigned = 0
    registered = 0
    try:
        records = db.query(PreviousOutstandingRecord).order_by(PreviousOutstandingRecord.record_id).all()

        missing = []
        for record in records:
            for index, p in enumerate(record.payments or []):
                if p.get("receipt_no"):
                    if register_existing(db, p["receipt_no"], ReceiptStream.OUTSTANDING.value):
                        registered += 1
                else:
                    missing.append((p.get("date") or "", record.record_id, index, record))

        missing.sort(key=lambda m: (m[0], m[1], m[2]))

        updated = {}
        for pay_date, _, index, record in missing:
            on_date = date.fromisoformat(pay_date) if pay_date else date.today()
            receipt_no = allocate_receipt_number(db, ReceiptStream.OUTSTANDING, on_date)

            payments = updated.setdefault(record.record_id, (record, list(record.payments)))[1]
            payments[index] = {**payments[index], "receipt_no": receipt_no}
            assigned += 1

        for record, payments in updated.values():
            record.payments = payments
            transaction_log.append_log(
                db,
                entry_id=record.record_id,
                actor=actor,
                transaction_type=transaction_log.UPDATE_PAYMENT,
                amount=0,
                description=f"Receipt numbers generated for {record.serial_number}",
                details={"receiptNumbers": [p.get("receipt_no") for p in payments]},
                record_kind=transaction_log.KIND_OUTSTANDING,
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("outstanding receipt backfill: %s assigned, %s registered", assigned, registered)
    return {"assigned": assigned, "registered": registered, "records_updated": len(updated)}
