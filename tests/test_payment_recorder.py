import logging
from datetime import date

import pytest

from app.core.exceptions import (
    BusinessRuleError,
    InsufficientAdvanceBalanceError,
    LedgerValidationError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from app.services import advance_ledger, payment_recorder, transaction_log
from app.services.payment_recorder import record_payment

from conftest import ADMIN, OPERATOR, VIEWER, assert_totals_consistent

TODAY = date.today()


def pay(db, entry, amount, mode="cash", actor=OPERATOR, **kw):
    return record_payment(db, entry.entry_id, amount=amount, payment_date=TODAY, mode=mode, actor=actor, **kw)


def test_partial_then_full_then_rejected(db, make_entry):
    entry = make_entry(amount=1000)

    entry, first = pay(db, entry, 400)
    assert (entry.received_amount, entry.pending_amount, entry.status) == (400, 600, "partial")
    assert first["receipt_no"].endswith("-00001")
    assert first["updated_by"] == "operator"

    entry, _ = pay(db, entry, 600)
    assert (entry.received_amount, entry.pending_amount, entry.status) == (1000, 0, "full")
    assert_totals_consistent(entry)

    with pytest.raises(BusinessRuleError, match="already fully paid"):
        pay(db, entry, 1)


def test_amount_above_pending_rejected_with_figures(db, make_entry):
    entry = make_entry(amount=1000)
    pay(db, entry, 700)

    with pytest.raises(BusinessRuleError) as exc:
        pay(db, entry, 400)

    assert "₹400" in str(exc.value)
    assert "₹300" in str(exc.value)
    assert exc.value.detail["pending_amount"] == 300


def test_amount_above_total_rejected(db, make_entry):
    entry = make_entry(amount=500)
    with pytest.raises(BusinessRuleError, match="total amount"):
        pay(db, entry, 501)


@pytest.mark.parametrize("amount", [0, -50])
def test_non_positive_amount_rejected(db, make_entry, amount):
    entry = make_entry(amount=500)
    with pytest.raises(LedgerValidationError):
        pay(db, entry, amount)


def test_rejected_payment_is_logged(db, make_entry, caplog):
    entry = make_entry(amount=500)

    with caplog.at_level(logging.INFO, logger="app.services.payment_recorder"):
        with pytest.raises(BusinessRuleError):
            pay(db, entry, 600)

    rejected = [r for r in caplog.records if "rejected" in r.getMessage()]
    assert len(rejected) == 1
    assert rejected[0].levelno == logging.INFO
    assert "business_rule" in rejected[0].getMessage()


def test_zero_total_entry_accepts_nothing(db, make_entry):
    entry = make_entry(amount=0)
    with pytest.raises(BusinessRuleError):
        pay(db, entry, 1)


def test_missing_entry(db):
    with pytest.raises(RecordNotFoundError):
        record_payment(db, 999, amount=10, payment_date=TODAY, mode="cash", actor=ADMIN)


def test_viewer_cannot_record(db, make_entry):
    entry = make_entry()
    with pytest.raises(PermissionDeniedError):
        pay(db, entry, 10, actor=VIEWER)


def test_unknown_mode_rejected(db, make_entry):
    entry = make_entry()
    with pytest.raises(LedgerValidationError):
        pay(db, entry, 10, mode="bitcoin")


def test_deleted_entry_rejects_payment(db, make_entry):
    entry = make_entry()
    payment_recorder.soft_delete_entry(db, entry.entry_id, actor=ADMIN)
    with pytest.raises(BusinessRuleError, match="deleted"):
        pay(db, entry, 10)


def test_logs_written_with_status_change(db, make_entry):
    entry = make_entry(amount=1000)
    pay(db, entry, 400)
    pay(db, entry, 100)

    logs = transaction_log.list_logs(db, entry_id=entry.entry_id)
    kinds = [(l.transaction_type, l.amount) for l in reversed(logs)]

    assert kinds == [
        ("credit", 1000),
        ("debit", 400),
        ("update_payment", 0),
        ("debit", 100),
    ]
    status_row = logs[1]
    assert status_row.description == "Payment status changed from pending to partial"
    assert status_row.username == "operator"


def test_receipt_numbers_column_tracks_payments(db, make_entry):
    entry = make_entry(amount=1000)
    entry, p1 = pay(db, entry, 100)
    entry, p2 = pay(db, entry, 100, mode="upi", file_url="https://files/upi.png")

    assert entry.receipt_numbers == f"{p1['receipt_no']}, {p2['receipt_no']}"
    assert entry.payments[1]["file_url"] == "https://files/upi.png"


def test_notification_failure_does_not_undo_payment(db, make_entry):
    class BrokenNotifier:
        @staticmethod
        def notify_payment_recorded(*args):
            raise RuntimeError("sms gateway down")

        @staticmethod
        def notify_payment_status_changed(*args):
            raise RuntimeError("sms gateway down")

    entry = make_entry(amount=1000)
    entry, _ = pay(db, entry, 250, notifier=BrokenNotifier)

    db.expire_all()
    assert payment_recorder.load_target(db, payment_recorder.ENTRY, entry.entry_id).received_amount == 250


# -------------------------------------------------
# Advance draws
# -------------------------------------------------
def test_advance_draw_writes_usage_and_reduces_balance(db, user, make_entry):
    advance_ledger.create_deposit(
        db, user_id=user.user_id, amount=500, on_date=TODAY, payment_mode="cash", actor=ADMIN,
    )
    entry = make_entry(amount=1000)

    entry, payment = pay(db, entry, 500, mode="advance_payment")

    assert payment["mode"] == "advance_payment"
    assert entry.received_amount == 500
    assert advance_ledger.remaining_balance(db, user.user_id) == 0
    usages = advance_ledger.list_usages(db, entry_id=entry.entry_id)
    assert [u.amount for u in usages] == [500]

    with pytest.raises(InsufficientAdvanceBalanceError) as exc:
        pay(db, entry, 1, mode="advance_payment")
    assert exc.value.detail["available"] == 0
    assert advance_ledger.remaining_balance(db, user.user_id) == 0
    assert payment_recorder.load_target(db, payment_recorder.ENTRY, entry.entry_id).received_amount == 500


def test_rejected_advance_draw_leaves_no_trace(db, user, make_entry):
    advance_ledger.create_deposit(
        db, user_id=user.user_id, amount=100, on_date=TODAY, payment_mode="upi", actor=ADMIN,
    )
    entry = make_entry(amount=1000)

    with pytest.raises(InsufficientAdvanceBalanceError):
        pay(db, entry, 300, mode="advance_payment")

    assert advance_ledger.list_usages(db, user_id=user.user_id) == []
    assert advance_ledger.remaining_balance(db, user.user_id) == 100
    assert payment_recorder.load_target(db, payment_recorder.ENTRY, entry.entry_id).payments == []
