# app/services/entry_service.py

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.actor import Actor, require_writer
from app.core.exceptions import (
    BusinessRuleError,
    LedgerValidationError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from app.models.entry_model import Entry
from app.models.user_model import User
from app.services import transaction_log
from app.services.payment_recorder import ENTRY, apply_payments, load_target
from app.utils.ledger_math import STATUS_PENDING, sum_received
from app.utils.notifications import NotificationService, safe_notify

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise RecordNotFoundError("User not found")
    return user


def _check_pledge_fields(amount: int, quantity: int, auction_date: date) -> None:
    if amount is None or amount < 0:
        raise LedgerValidationError("Amount cannot be negative")
    if quantity is None or quantity < 1:
        raise LedgerValidationError("Quantity must be at least 1")
    if auction_date > date.today():
        raise LedgerValidationError(
            "Boli date cannot be in the future. Please select today's date or earlier."
        )


def next_serial_number(db: Session) -> int:
    return int(db.query(func.coalesce(func.max(Entry.serial_number), 0)).scalar()) + 1


# =================================================
# CREATE
# =================================================
def create_entry(
        db: Session,
        *,
        user_id: int,
        description: str,
        amount: int,
        quantity: int,
        auction_date: date,
        actor: Actor,
        occasion: str = "",
        bedi_number: str = "1",
        notifier=NotificationService,
) -> Entry:
    require_writer(actor)

    if not (description or "").strip():
        raise LedgerValidationError("Description is required")
    _check_pledge_fields(amount, quantity, auction_date)

    try:
        user = _get_user(db, user_id)
        total = amount * quantity

        entry = Entry(
            user_id=user.user_id,
            user_name=user.name,
            user_mobile=user.mobile,
            description=description.strip(),
            occasion=occasion or "",
            bedi_number=bedi_number or "1",
            serial_number=next_serial_number(db),
            auction_date=auction_date,
            amount=amount,
            quantity=quantity,
            total_amount=total,
            received_amount=0,
            pending_amount=total,
            status=STATUS_PENDING,
            payments=[],
            receipt_numbers="",
            deleted_receipt_numbers="",
            entry_status="active",
            created_by=actor.username,
        )
        db.add(entry)
        db.flush()

        transaction_log.append_log(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            transaction_type=transaction_log.CREDIT,
            amount=total,
            description=f"Entry created for {user.name} by {actor.username}",
            details={
                "description": entry.description,
                "occasion": entry.occasion,
                "auctionDate": auction_date,
            },
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    logger.info("entry %s created for user %s, total %s", entry.entry_id, user.user_id, total)

    safe_notify(notifier.notify_entry_created, user, entry)
    return entry


# =================================================
# UPDATE
# =================================================
def update_entry(
        db: Session,
        entry_id: int,
        *,
        actor: Actor,
        user_id: Optional[int] = None,
        description: Optional[str] = None,
        amount: Optional[int] = None,
        quantity: Optional[int] = None,
        occasion: Optional[str] = None,
        bedi_number: Optional[str] = None,
        auction_date: Optional[date] = None,
) -> Entry:
    """
    Operators may edit descriptive fields only; changing the owner or anything
    that moves the total needs an admin. A new total below what has already been
    received is refused.
    """
    require_writer(actor)

    try:
        entry = load_target(db, ENTRY, entry_id)
        if entry.is_deleted:
            raise BusinessRuleError("Cannot edit a deleted entry")

        new_amount = entry.amount if amount is None else amount
        new_quantity = entry.quantity if quantity is None else quantity
        new_date = entry.auction_date if auction_date is None else auction_date

        if not actor.is_admin:
            if new_amount != entry.amount or new_quantity != entry.quantity:
                raise PermissionDeniedError(
                    "Operators cannot modify the total amount. Only administrators can edit this field."
                )
            if user_id is not None and user_id != entry.user_id:
                raise PermissionDeniedError(
                    "Operators cannot change the user selection. Only administrators can edit this field."
                )

        _check_pledge_fields(new_amount, new_quantity, new_date)

        new_total = new_amount * new_quantity
        received = sum_received(entry.payments)
        if new_total < received:
            raise BusinessRuleError(
                f"Total amount (₹{new_total:,}) cannot be less than the amount already received (₹{received:,})",
                extra={"total_amount": new_total, "received_amount": received},
            )

        before = {
            "userId": entry.user_id,
            "description": entry.description,
            "amount": entry.amount,
            "quantity": entry.quantity,
            "totalAmount": entry.total_amount,
            "occasion": entry.occasion,
            "bediNumber": entry.bedi_number,
            "auctionDate": entry.auction_date,
        }

        if user_id is not None and user_id != entry.user_id:
            user = _get_user(db, user_id)
            entry.user_id = user.user_id
            entry.user_name = user.name
            entry.user_mobile = user.mobile

        if description is not None:
            if not description.strip():
                raise LedgerValidationError("Description is required")
            entry.description = description.strip()
        if occasion is not None:
            entry.occasion = occasion
        if bedi_number is not None:
            entry.bedi_number = bedi_number

        entry.auction_date = new_date
        entry.amount = new_amount
        entry.quantity = new_quantity
        entry.total_amount = new_total

        old_status = entry.status
        apply_payments(entry, list(entry.payments or []))

        after = {
            "userId": entry.user_id,
            "description": entry.description,
            "amount": entry.amount,
            "quantity": entry.quantity,
            "totalAmount": entry.total_amount,
            "occasion": entry.occasion,
            "bediNumber": entry.bedi_number,
            "auctionDate": entry.auction_date,
        }

        transaction_log.append_log(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            transaction_type=transaction_log.UPDATE_ENTRY,
            amount=new_total,
            description=f"Entry updated by {actor.username} ({actor.role})",
            details={
                "before": before,
                "after": after,
                "changed": sorted(k for k in before if before[k] != after[k]),
                "updatedBy": actor.username,
            },
        )
        transaction_log.log_status_change(
            db,
            entry_id=entry.entry_id,
            actor=actor,
            old_status=old_status,
            new_status=entry.status,
            reason="after editing entry",
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    return entry


# =================================================
# QUERIES
# =================================================
def get_entry(db: Session, entry_id: int) -> Entry:
    return load_target(db, ENTRY, entry_id)


def list_entries(
        db: Session,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        deleted: bool = False,
        limit: int = 50,
        offset: int = 0,
):
    limit = max(1, min(limit, 200))
    offset = max(0, offset)

    q = db.query(Entry).filter(Entry.entry_status == ("deleted" if deleted else "active"))
    if user_id is not None:
        q = q.filter(Entry.user_id == user_id)
    if status:
        q = q.filter(Entry.status == status.lower())
    return q.order_by(Entry.entry_id.desc()).offset(offset).limit(limit).all()
