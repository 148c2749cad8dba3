# app/services/payment_recorder.py
"""
Records, edits and deletes payments embedded in an Entry (or a previous
outstanding record) and keeps the derived fields in step:

    received_amount = sum(live payments)
    pending_amount  = total - received_amount   (never negative)
    status          = pending / partial / full

Recording follows read -> validate -> allocate receipt -> re-read -> validate
again -> write. The ``version`` column makes the final UPDATE conditional on the
row being unchanged since the re-read, so a payment that slipped in between
surfaces as ConcurrencyConflictError instead of an overshoot.

Every public function commits exactly once, or rolls back and raises.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.actor import Actor, require_admin, require_writer
from app.core.exceptions import (
    BusinessRuleError,
    ConcurrencyConflictError,
    LedgerError,
    LedgerValidationError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from app.models.entry_model import Entry
from app.models.previous_outstanding_model import PreviousOutstandingRecord
from app.models.user_model import User
from app.services import advance_ledger, transaction_log
from app.services.receipt_allocator import allocate_receipt_number
from app.utils.ledger_math import (
    MODE_ADVANCE,
    MODE_CASH,
    NON_CASH_MODES,
    PAYMENT_MODES,
    STATUS_FULL,
    compute_totals,
    is_live,
    join_receipt_numbers,
    strip_deleted,
    sum_received,
    tag_deleted,
)
from app.utils.notifications import NotificationService, safe_notify
from app.utils.receipt_numbers import ReceiptStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerKind:
    model: type
    id_attr: str
    stream: ReceiptStream
    log_kind: str
    label: str
    allows_advance: bool


ENTRY = LedgerKind(
    model=Entry,
    id_attr="entry_id",
    stream=ReceiptStream.BOLI,
    log_kind=transaction_log.KIND_ENTRY,
    label="Entry",
    allows_advance=True,
)

OUTSTANDING = LedgerKind(
    model=PreviousOutstandingRecord,
    id_attr="record_id",
    stream=ReceiptStream.OUTSTANDING,
    log_kind=transaction_log.KIND_OUTSTANDING,
    label="Previous outstanding record",
    allows_advance=False,
)


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def load_target(db: Session, kind: LedgerKind, target_id: int):
    model = kind.model
    obj = db.query(model).filter(getattr(model, kind.id_attr) == target_id).first()
    if not obj:
        raise RecordNotFoundError(f"{kind.label} not found")
    return obj


def _target_id(kind: LedgerKind, target) -> int:
    return getattr(target, kind.id_attr)


def apply_payments(target, payments: List[dict]) -> None:
    """Stores ``payments`` and recomputes every derived column from it."""
    received, pending, status = compute_totals(payments, target.total_due)
    target.payments = payments
    target.received_amount = received
    target.pending_amount = pending
    target.status = status
    if hasattr(target, "receipt_numbers"):
        target.receipt_numbers = join_receipt_numbers(payments)
        target.deleted_receipt_numbers = join_receipt_numbers(payments, deleted=True)


def _check_can_accept(target, kind: LedgerKind, amount: int) -> None:
    if target.is_deleted:
        raise BusinessRuleError(f"{kind.label} is deleted; restore it before recording payments")

    if target.status == STATUS_FULL:
        raise BusinessRuleError(f"{kind.label} is already fully paid")

    if target.pending_amount <= 0:
        raise BusinessRuleError("Cannot add payment: Pending amount is ₹0")

    if amount is None or amount <= 0:
        raise LedgerValidationError("Payment amount must be greater than ₹0")

    if amount > target.total_due:
        raise BusinessRuleError(
            f"Payment amount (₹{amount:,}) cannot exceed total amount (₹{target.total_due:,})",
            extra={"amount": amount, "total_amount": target.total_due},
        )

    if amount > target.pending_amount:
        raise BusinessRuleError(
            f"Payment amount (₹{amount:,}) cannot exceed pending amount (₹{target.pending_amount:,})",
            extra={"amount": amount, "pending_amount": target.pending_amount},
        )


def _would_overshoot(target, amount: int) -> Tuple[bool, int]:
    new_received = sum_received(target.payments) + amount
    return new_received > target.total_due, new_received


def _validate_mode(kind: LedgerKind, mode: str, file_url: Optional[str]) -> None:
    if mode not in PAYMENT_MODES:
        raise LedgerValidationError(f"Unsupported payment mode: {mode}")
    if mode == MODE_ADVANCE and not kind.allows_advance:
        raise LedgerValidationError(f"Advance balance cannot be used for a {kind.label.lower()}")
    if kind is OUTSTANDING and mode in NON_CASH_MODES and not file_url:
        raise LedgerValidationError(
            "Payment screenshot/proof is required for UPI, Cheque and NetBanking payments"
        )


def _owner(db: Session, target) -> Optional[User]:
    return db.query(User).filter(User.user_id == target.user_id).first()


def _commit(db: Session, kind: LedgerKind, target_id: int) -> None:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.info("stale write on %s %s", kind.log_kind, target_id)
        raise ConcurrencyConflictError(
            f"{kind.label} was updated by another request. Please retry."
        )


def _notify_payment(db: Session, target, payment: dict, old_status: str, notifier) -> None:
    user = _owner(db, target)
    if not user:
        return
    safe_notify(notifier.notify_payment_recorded, user, target, payment)
    if old_status != target.status:
        safe_notify(notifier.notify_payment_status_changed, user, target, old_status, target.status)


def _payment_at(target, index: int) -> dict:
    payments = target.payments or []
    if index < 0 or index >= len(payments):
        raise RecordNotFoundError("Payment record not found")
    return payments[index]


# =================================================
# RECORD
# =================================================
def record_payment(
        db: Session,
        target_id: int,
        *,
        amount: int,
        payment_date: date,
        mode: str,
        actor: Actor,
        file_url: Optional[str] = None,
        kind: LedgerKind = ENTRY,
        notifier=NotificationService,
) -> Tuple[object, dict]:
    """
    Adds one payment. Returns (updated target, payment record).

    Raises:
      RecordNotFoundError, LedgerValidationError, BusinessRuleError,
      InsufficientAdvanceBalanceError, ConcurrencyConflictError
    """
    require_writer(actor)

    try:
        _validate_mode(kind, mode, file_url)
        target = load_target(db, kind, target_id)
        tid = _target_id(kind, target)

        _check_can_accept(target, kind, amount)

        overshoot, new_received = _would_overshoot(target, amount)
        if overshoot:
            raise BusinessRuleError(
                f"Payment rejected: Total received amount would be ₹{new_received:,}, "
                f"exceeding total amount of ₹{target.total_due:,}",
                extra={"would_receive": new_received, "total_amount": target.total_due},
            )

        # balance check only; the usage row is written after the second check
        if mode == MODE_ADVANCE:
            advance_ledger.ensure_sufficient(db, target.user_id, amount)

        receipt_no = allocate_receipt_number(db, kind.stream, payment_date)

        # re-read: another payment may have landed since the first check
        db.refresh(target)
        if target.is_deleted:
            raise ConcurrencyConflictError(f"{kind.label} was deleted by another request. Please retry.")

        overshoot, new_received = _would_overshoot(target, amount)
        if overshoot:
            raise ConcurrencyConflictError(
                f"Payment rejected due to concurrent update: Total received amount would be "
                f"₹{new_received:,}, exceeding total amount of ₹{target.total_due:,}. Please retry.",
                extra={"would_receive": new_received, "total_amount": target.total_due},
            )

        if mode == MODE_ADVANCE:
            advance_ledger.add_usage(
                db,
                user_id=target.user_id,
                entry_id=tid,
                amount=amount,
                on_date=payment_date,
                actor=actor,
            )

        payment = {
            "date": payment_date.isoformat(),
            "amount": amount,
            "mode": mode,
            "file_url": file_url,
            "receipt_no": receipt_no,
            "updated_by": actor.username,
        }

        old_status = target.status
        apply_payments(target, [*(target.payments or []), payment])

        transaction_log.append_log(
            db,
            entry_id=tid,
            actor=actor,
            transaction_type=transaction_log.DEBIT,
            amount=amount,
            description=f"Payment of ₹{amount:,} recorded by {actor.username}",
            details={"date": payment["date"], "paymentMode": mode, "receiptNo": receipt_no},
            record_kind=kind.log_kind,
        )
        transaction_log.log_status_change(
            db,
            entry_id=tid,
            actor=actor,
            old_status=old_status,
            new_status=target.status,
            record_kind=kind.log_kind,
            details={"payment": payment},
        )

        _commit(db, kind, tid)
    except LedgerError as exc:
        db.rollback()
        logger.info("payment of %s on %s %s rejected (%s): %s", amount, kind.log_kind, target_id, exc.code, exc)
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(target)
    logger.info("payment %s of %s recorded on %s %s", receipt_no, amount, kind.log_kind, tid)

    _notify_payment(db, target, payment, old_status, notifier)
    return target, payment


# =================================================
# EDIT
# =================================================
def edit_payment(
        db: Session,
        target_id: int,
        index: int,
        *,
        actor: Actor,
        payment_date: Optional[date] = None,
        amount: Optional[int] = None,
        mode: Optional[str] = None,
        file_url: Optional[str] = None,
        kind: LedgerKind = ENTRY,
):
    """
    Admins may change date, amount, mode and proof. Operators may change only the
    mode, plus the proof that goes with the new mode; an operator moving a payment
    away from cash must supply that proof.
    """
    require_writer(actor)

    if payment_date is None and amount is None and mode is None and file_url is None:
        raise LedgerValidationError("No changes supplied")

    if not actor.is_admin and (payment_date is not None or amount is not None):
        raise PermissionDeniedError(
            "Operators can only edit payment mode. Date and amount changes require admin access."
        )

    try:
        target = load_target(db, kind, target_id)
        tid = _target_id(kind, target)

        if target.is_deleted:
            raise BusinessRuleError(f"Cannot edit payments of a deleted {kind.label.lower()}")

        existing = _payment_at(target, index)
        if not is_live(existing):
            raise BusinessRuleError("Cannot edit a deleted payment")

        updated = {**existing, "updated_by": actor.username}

        if mode is not None and mode != existing.get("mode"):
            if mode not in PAYMENT_MODES:
                raise LedgerValidationError(f"Unsupported payment mode: {mode}")
            # the advance ledger holds a usage row per draw; switching in or out would desync it
            if MODE_ADVANCE in (mode, existing.get("mode")):
                raise BusinessRuleError("Payments drawn from advance balance cannot change mode")
            if not actor.is_admin and existing.get("mode") == MODE_CASH and mode != MODE_CASH and not file_url:
                raise LedgerValidationError(
                    "Payment screenshot is required when changing from cash to UPI/other modes."
                )
            updated["mode"] = mode
        elif file_url is not None and not actor.is_admin:
            raise PermissionDeniedError(
                "Operators can only replace the screenshot together with a payment mode change."
            )

        if file_url is not None:
            updated["file_url"] = file_url

        if payment_date is not None:
            updated["date"] = payment_date.isoformat()

        if amount is not None and amount != existing.get("amount"):
            if amount <= 0:
                raise LedgerValidationError("Payment amount must be greater than ₹0")
            if existing.get("mode") == MODE_ADVANCE:
                raise BusinessRuleError("Amount of a payment drawn from advance balance cannot be changed")
            updated["amount"] = amount

        payments = list(target.payments)
        payments[index] = updated

        new_received = sum_received(payments)
        if new_received > target.total_due:
            raise BusinessRuleError(
                f"Edit rejected: Total received amount would be ₹{new_received:,}, "
                f"exceeding total amount of ₹{target.total_due:,}",
                extra={"would_receive": new_received, "total_amount": target.total_due},
            )

        changes = []
        if existing.get("date") != updated.get("date"):
            changes.append(f"Date: {existing.get('date')} → {updated.get('date')}")
        if existing.get("amount") != updated.get("amount"):
            changes.append(f"Amount: ₹{existing.get('amount')} → ₹{updated.get('amount')}")
        if existing.get("mode") != updated.get("mode"):
            changes.append(f"Mode: {existing.get('mode')} → {updated.get('mode')}")
        if existing.get("file_url") != updated.get("file_url"):
            changes.append("Screenshot updated")

        old_status = target.status
        apply_payments(target, payments)

        transaction_log.append_log(
            db,
            entry_id=tid,
            actor=actor,
            transaction_type=transaction_log.UPDATE_PAYMENT,
            amount=updated["amount"],
            description=f"Edited payment record for {kind.log_kind} #{tid}: {', '.join(changes) or 'no changes'}",
            details={"paymentIndex": index, "before": existing, "after": updated, "changes": changes},
            record_kind=kind.log_kind,
        )
        transaction_log.log_status_change(
            db,
            entry_id=tid,
            actor=actor,
            old_status=old_status,
            new_status=target.status,
            record_kind=kind.log_kind,
            reason="after editing payment",
        )

        _commit(db, kind, tid)
    except Exception:
        db.rollback()
        raise

    db.refresh(target)
    return target


# =================================================
# DELETE ONE PAYMENT
# =================================================
def delete_payment(
        db: Session,
        target_id: int,
        index: int,
        *,
        actor: Actor,
        kind: LedgerKind = ENTRY,
):
    """
    Removes the payment at ``index``. Its receipt number stays claimed in the
    registry and is never handed out again. An advance-draw payment does not
    give its amount back to the advance balance.
    """
    require_admin(actor)

    try:
        target = load_target(db, kind, target_id)
        tid = _target_id(kind, target)

        if target.is_deleted:
            raise BusinessRuleError(f"Cannot delete payments of a deleted {kind.label.lower()}")

        removed = _payment_at(target, index)
        payments = [p for i, p in enumerate(target.payments) if i != index]

        old_status = target.status
        apply_payments(target, payments)

        details = {
            "date": removed.get("date"),
            "mode": removed.get("mode"),
            "amount": removed.get("amount"),
            "fileUrl": removed.get("file_url"),
            "receiptNo": removed.get("receipt_no"),
        }
        if removed.get("mode") == MODE_ADVANCE:
            details["advanceUsageReversed"] = False

        transaction_log.append_log(
            db,
            entry_id=tid,
            actor=actor,
            transaction_type=transaction_log.CREDIT,
            amount=removed.get("amount") or 0,
            description=f"Deleted payment record of ₹{removed.get('amount')} from {kind.log_kind} #{tid}",
            details=details,
            record_kind=kind.log_kind,
        )
        transaction_log.log_status_change(
            db,
            entry_id=tid,
            actor=actor,
            old_status=old_status,
            new_status=target.status,
            record_kind=kind.log_kind,
            reason="after deleting payment",
            details={"deletedPayment": removed},
        )

        _commit(db, kind, tid)
    except Exception:
        db.rollback()
        raise

    db.refresh(target)
    return target


# =================================================
# SOFT DELETE / RESTORE ENTRY
# =================================================
def soft_delete_entry(db: Session, entry_id: int, *, actor: Actor) -> Entry:
    """Flags the entry deleted and tags every payment; nothing is removed."""
    require_admin(actor)

    try:
        entry = load_target(db, ENTRY, entry_id)
        if entry.is_deleted:
            raise BusinessRuleError("Entry is already deleted")

        snapshot = {
            "entryId": entry.entry_id,
            "description": entry.description,
            "totalAmount": entry.total_amount,
            "receivedAmount": entry.received_amount,
            "pendingAmount": entry.pending_amount,
            "status": entry.status,
            "userName": entry.user_name,
        }

        old_status = entry.status
        entry.entry_status = "deleted"
        apply_payments(entry, tag_deleted(entry.payments))

        transaction_log.append_log(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            transaction_type=transaction_log.DEBIT,
            amount=entry.total_amount,
            description=f"Soft deleted boli entry #{entry.entry_id}: {entry.description}",
            details=snapshot,
        )
        transaction_log.log_status_change(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            old_status=old_status,
            new_status=entry.status,
            reason="after deleting entry",
        )

        _commit(db, ENTRY, entry.entry_id)
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    return entry


def restore_entry(db: Session, entry_id: int, *, actor: Actor) -> Entry:
    require_admin(actor)

    try:
        entry = load_target(db, ENTRY, entry_id)
        if not entry.is_deleted:
            raise BusinessRuleError("Entry is not deleted")

        old_status = entry.status
        entry.entry_status = "active"
        apply_payments(entry, strip_deleted(entry.payments))

        transaction_log.append_log(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            transaction_type=transaction_log.CREDIT,
            amount=entry.total_amount,
            description=f"Restored boli entry #{entry.entry_id}: {entry.description}",
            details={
                "entryId": entry.entry_id,
                "description": entry.description,
                "totalAmount": entry.total_amount,
                "receivedAmount": entry.received_amount,
                "status": entry.status,
                "userName": entry.user_name,
            },
        )
        transaction_log.log_status_change(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            old_status=old_status,
            new_status=entry.status,
            reason="after restoring entry",
        )

        _commit(db, ENTRY, entry.entry_id)
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    return entry
