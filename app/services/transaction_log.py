# app/services/transaction_log.py
"""
Append-only audit trail.

``append_log`` is the only write path into ``transaction_logs``; nothing in the
code base updates or deletes a log row. Rows are added to the caller's session
so they commit (or roll back) together with the change they describe.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.actor import Actor
from app.models.transaction_log_model import TransactionLog


CREDIT = "credit"
DEBIT = "debit"
UPDATE_ENTRY = "update_entry"
UPDATE_PAYMENT = "update_payment"
ADVANCE_DEPOSIT = "advance_deposit"

KIND_ENTRY = "entry"
KIND_OUTSTANDING = "outstanding"
KIND_ADVANCE = "advance"


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    return value


def append_log(
        db: Session,
        *,
        entry_id: int,
        actor: Actor,
        transaction_type: str,
        amount: int,
        description: str,
        details: Optional[dict] = None,
        record_kind: str = KIND_ENTRY,
) -> TransactionLog:
    row = TransactionLog(
        entry_id=entry_id,
        record_kind=record_kind,
        user_id=actor.user_id,
        username=actor.username,
        transaction_type=transaction_type,
        amount=int(amount or 0),
        description=description,
        details=_jsonable(details or {}),
        date=date.today(),
    )
    db.add(row)
    return row


def log_status_change(
        db: Session,
        *,
        entry_id: int,
        actor: Actor,
        old_status: str,
        new_status: str,
        record_kind: str = KIND_ENTRY,
        reason: str = "",
        details: Optional[dict] = None,
) -> Optional[TransactionLog]:
    """Extra row written whenever a mutation moves the payment status."""
    if old_status == new_status:
        return None

    suffix = f" {reason}" if reason else ""
    return append_log(
        db,
        entry_id=entry_id,
        actor=actor,
        transaction_type=UPDATE_PAYMENT,
        amount=0,
        description=f"Payment status changed from {old_status} to {new_status}{suffix}",
        details={"oldStatus": old_status, "newStatus": new_status, **(details or {})},
        record_kind=record_kind,
    )


def list_logs(db: Session, entry_id: Optional[int] = None, record_kind: Optional[str] = None,
              limit: int = 200, offset: int = 0):
    q = db.query(TransactionLog)
    if entry_id is not None:
        q = q.filter(TransactionLog.entry_id == entry_id)
    if record_kind:
        q = q.filter(TransactionLog.record_kind == record_kind)
    return q.order_by(TransactionLog.log_id.desc()).offset(offset).limit(limit).all()
