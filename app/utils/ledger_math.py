from typing import Iterable, List, Tuple

PAYMENT_DELETED = "deleted"

STATUS_PENDING = "pending"
STATUS_PARTIAL = "partial"
STATUS_FULL = "full"


def is_live(payment: dict) -> bool:
    return payment.get("status") != PAYMENT_DELETED


def live_payments(payments: Iterable[dict]) -> List[dict]:
    return [p for p in (payments or []) if is_live(p)]


def sum_received(payments: Iterable[dict]) -> int:
    """Sum of amounts over payments not tagged deleted."""
    return sum(int(p.get("amount") or 0) for p in live_payments(payments))


def payment_status(received: int, total: int) -> str:
    """
    pending : nothing received
    partial : 0 < received < total
    full    : received >= total

    Example:
      total=1000, received=400 => partial
    """
    if received <= 0:
        return STATUS_PENDING
    if received < total:
        return STATUS_PARTIAL
    return STATUS_FULL


def compute_totals(payments: Iterable[dict], total: int) -> Tuple[int, int, str]:
    """
    Returns:
      received_amount, pending_amount, status

    pending_amount is clamped at 0 so a total edited below what was already
    received never shows as a negative balance.
    """
    received = sum_received(payments)
    pending = max(0, int(total) - received)
    return received, pending, payment_status(received, int(total))


def join_receipt_numbers(payments: Iterable[dict], deleted: bool = False) -> str:
    """Comma-joined receipt numbers of live (or, with ``deleted``, delete-tagged) payments."""
    out = []
    for p in payments or []:
        if is_live(p) == deleted:
            continue
        r = (p.get("receipt_no") or "").strip()
        if r:
            out.append(r)
    return ", ".join(out)


def tag_deleted(payments: Iterable[dict]) -> List[dict]:
    return [{**p, "status": PAYMENT_DELETED} for p in payments or []]


def strip_deleted(payments: Iterable[dict]) -> List[dict]:
    return [{k: v for k, v in p.items() if k != "status"} for p in payments or []]


# ---------------------
# Payment modes
# ---------------------
MODE_CASH = "cash"
MODE_UPI = "upi"
MODE_CHEQUE = "cheque"
MODE_NETBANKING = "netbanking"
MODE_ADVANCE = "advance_payment"

PAYMENT_MODES = (MODE_CASH, MODE_UPI, MODE_CHEQUE, MODE_NETBANKING, MODE_ADVANCE)
NON_CASH_MODES = (MODE_UPI, MODE_CHEQUE, MODE_NETBANKING)
