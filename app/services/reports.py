# app/services/reports.py

from collections import defaultdict
from typing import Dict

from sqlalchemy.orm import Session

from app.core.exceptions import RecordNotFoundError
from app.models.entry_model import Entry
from app.models.user_model import User
from app.services import advance_ledger
from app.utils.ledger_math import live_payments


def daily_payments(db: Session, year: int) -> Dict[str, int]:
    """{ 'YYYY-MM-DD': amount } over live payments of active entries."""
    totals = defaultdict(int)
    entries = db.query(Entry.payments).filter(Entry.entry_status == "active").all()
    for (payments,) in entries:
        for p in live_payments(payments):
            d = p.get("date") or ""
            if d[:4] == f"{year:04d}":
                totals[d] += int(p.get("amount") or 0)
    return dict(sorted(totals.items()))


def user_summary(db: Session, user_id: int) -> dict:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise RecordNotFoundError("User not found")

    entries = (
        db.query(Entry)
        .filter(Entry.user_id == user_id, Entry.entry_status == "active")
        .all()
    )

    return {
        "user_id": user.user_id,
        "user_name": user.name,
        "entries": len(entries),
        "total_amount": sum(e.total_amount for e in entries),
        "received_amount": sum(e.received_amount for e in entries),
        "pending_amount": sum(e.pending_amount for e in entries),
        "advance_balance": advance_ledger.remaining_balance(db, user_id),
    }
