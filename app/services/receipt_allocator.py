# app/services/receipt_allocator.py
"""
Receipt number allocation: PREFIX-YYYY-NNNNN.

The used-set for a year is re-derived from the data on every call (payments
embedded in entries and previous-outstanding records, advance deposits, and
the issued-number registry), so manual data fixes are picked up automatically.
The chosen number is then claimed in ``issued_receipt_numbers`` inside a
savepoint of the caller's transaction; a unique violation means another
writer got there first and the next free number is tried instead.
"""

import logging
import time
from datetime import date
from typing import Iterable, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import RECEIPT_PREFIX
from app.models.advance_payment_model import AdvancePayment
from app.models.entry_model import Entry
from app.models.previous_outstanding_model import PreviousOutstandingRecord
from app.models.receipt_number_model import IssuedReceiptNumber
from app.utils.receipt_numbers import (
    ReceiptStream,
    fallback_suffix,
    format_receipt_no,
    next_number,
    parse_receipt_no,
)

logger = logging.getLogger(__name__)

FALLBACK_MARKER = "receipt_allocator.fallback"

# unique-violation retries before giving up; each retry moves to the next free number
MAX_CLAIM_ATTEMPTS = 50


def _numbers_for_year(receipts: Iterable[Optional[str]], prefix: str, year: int) -> Set[int]:
    out = set()
    for r in receipts:
        parsed = parse_receipt_no(prefix, r)
        if parsed and parsed[0] == year:
            out.add(parsed[1])
    return out


def _payment_receipts(rows) -> Iterable[Optional[str]]:
    for (payments,) in rows:
        for p in payments or []:
            if isinstance(p, dict):
                yield p.get("receipt_no")


def collect_used_numbers(db: Session, year: int, prefix: str = RECEIPT_PREFIX) -> Set[int]:
    """Every receipt number already present in the store for ``year``, both streams."""
    like = f"{prefix}-{year:04d}-%"

    used = _numbers_for_year(_payment_receipts(db.query(Entry.payments).all()), prefix, year)
    used |= _numbers_for_year(
        _payment_receipts(db.query(PreviousOutstandingRecord.payments).all()), prefix, year
    )
    used |= _numbers_for_year(
        (r for (r,) in db.query(AdvancePayment.receipt_no).filter(AdvancePayment.receipt_no.like(like))),
        prefix,
        year,
    )
    used |= _numbers_for_year(
        (r for (r,) in db.query(IssuedReceiptNumber.receipt_no).filter(IssuedReceiptNumber.receipt_no.like(like))),
        prefix,
        year,
    )
    return used


def _fallback_receipt(prefix: str, year: int) -> str:
    n = fallback_suffix(int(time.time() * 1000))
    receipt_no = format_receipt_no(prefix, year, n)
    logger.error(
        "%s: issuing time-derived receipt %s; it is not guaranteed unique, check for collisions",
        FALLBACK_MARKER,
        receipt_no,
    )
    return receipt_no


def allocate_receipt_number(
        db: Session,
        stream: ReceiptStream,
        payment_date: date,
        prefix: Optional[str] = None,
) -> str:
    """
    Returns the next free receipt number of ``stream`` for the payment date's year
    and claims it in the caller's transaction. The claim commits or rolls back with
    the payment.
    """
    prefix = prefix or RECEIPT_PREFIX
    year = payment_date.year
    stream = ReceiptStream(stream)

    try:
        with db.begin_nested():
            used = collect_used_numbers(db, year, prefix)
    except SQLAlchemyError:
        logger.exception("%s: used-number scan failed for %s", FALLBACK_MARKER, year)
        return _fallback_receipt(prefix, year)

    for _ in range(MAX_CLAIM_ATTEMPTS):
        n = next_number(stream, used)
        receipt_no = format_receipt_no(prefix, year, n)
        try:
            with db.begin_nested():
                db.add(
                    IssuedReceiptNumber(
                        receipt_no=receipt_no,
                        year=year,
                        number=n,
                        stream=stream.value,
                    )
                )
        except IntegrityError:
            logger.info("receipt %s already claimed, trying next", receipt_no)
            used.add(n)
            continue

        logger.debug("allocated %s (%s)", receipt_no, stream.value)
        return receipt_no

    raise RuntimeError(f"Could not claim a {stream.value} receipt number for {year}")


def register_existing(db: Session, receipt_no: str, stream: str, prefix: Optional[str] = None) -> bool:
    """
    Records a receipt number that was issued outside the allocator (imports,
    manual fixes). Returns False when it is already registered or not ours.
    """
    prefix = prefix or RECEIPT_PREFIX
    parsed = parse_receipt_no(prefix, receipt_no)
    if not parsed:
        return False
    try:
        with db.begin_nested():
            db.add(IssuedReceiptNumber(receipt_no=receipt_no, year=parsed[0], number=parsed[1], stream=stream))
    except IntegrityError:
        return False
    return True
