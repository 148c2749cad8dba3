from datetime import date

import pytest

from app.core.exceptions import BusinessRuleError, LedgerValidationError, PermissionDeniedError
from app.services import outstanding_service, transaction_log
from app.services.payment_recorder import apply_payments

from conftest import ADMIN, OPERATOR, VIEWER, assert_totals_consistent

TODAY = date.today()
YEAR = TODAY.year


@pytest.fixture
def make_record(db, user):
    def _make(amount=5000, **kw):
        return outstanding_service.create_record(
            db, user_id=user.user_id, outstanding_amount=amount, actor=OPERATOR, **kw
        )

    return _make


def test_create_record_numbers(db, make_record):
    first = make_record()
    second = make_record(amount=1200, description="Dues till 2023")

    assert first.serial_number == f"PO-{YEAR}-001"
    assert second.serial_number == f"PO-{YEAR}-002"
    assert (first.record_number, second.record_number) == (1, 2)
    assert first.description == "Previous Outstanding Amount"
    assert (first.pending_amount, first.status) == (5000, "pending")

    log = transaction_log.list_logs(db, entry_id=first.record_id, record_kind="outstanding")[0]
    assert (log.transaction_type, log.amount) == ("credit", 5000)


def test_create_record_validation(db, user, make_record):
    with pytest.raises(LedgerValidationError):
        make_record(amount=0)
    with pytest.raises(PermissionDeniedError):
        outstanding_service.create_record(db, user_id=user.user_id, outstanding_amount=10, actor=VIEWER)


def test_payment_uses_outstanding_stream(db, make_record):
    record = make_record(amount=5000)

    record, payment = outstanding_service.record_payment(
        db, record.record_id, amount=2000, payment_date=TODAY, mode="cash", actor=OPERATOR,
    )

    assert payment["receipt_no"] == f"SPDJMSJ-{YEAR}-00201"
    assert (record.received_amount, record.pending_amount, record.status) == (2000, 3000, "partial")
    assert_totals_consistent(record)

    rows = transaction_log.list_logs(db, entry_id=record.record_id, record_kind="outstanding")
    assert rows[1].transaction_type == "debit"


def test_non_cash_payment_needs_proof(db, make_record):
    record = make_record()
    with pytest.raises(LedgerValidationError, match="proof"):
        outstanding_service.record_payment(
            db, record.record_id, amount=100, payment_date=TODAY, mode="upi", actor=OPERATOR,
        )

    record, _ = outstanding_service.record_payment(
        db, record.record_id, amount=100, payment_date=TODAY, mode="upi",
        file_url="https://files/upi.png", actor=OPERATOR,
    )
    assert record.received_amount == 100


def test_advance_draw_not_allowed(db, make_record):
    record = make_record()
    with pytest.raises(LedgerValidationError):
        outstanding_service.record_payment(
            db, record.record_id, amount=100, payment_date=TODAY, mode="advance_payment", actor=OPERATOR,
        )


def test_edit_and_delete_record_payment(db, make_record):
    record = make_record(amount=1000)
    outstanding_service.record_payment(db, record.record_id, amount=300, payment_date=TODAY, mode="cash", actor=OPERATOR)
    outstanding_service.record_payment(db, record.record_id, amount=200, payment_date=TODAY, mode="cash", actor=OPERATOR)

    record = outstanding_service.edit_payment(db, record.record_id, 0, amount=500, actor=ADMIN)
    assert (record.received_amount, record.pending_amount, record.status) == (700, 300, "partial")

    with pytest.raises(BusinessRuleError):
        outstanding_service.edit_payment(db, record.record_id, 0, mode="advance_payment", actor=ADMIN)
    with pytest.raises(PermissionDeniedError):
        outstanding_service.delete_payment(db, record.record_id, 1, actor=OPERATOR)

    record = outstanding_service.delete_payment(db, record.record_id, 1, actor=ADMIN)
    assert [p["amount"] for p in record.payments] == [500]
    assert_totals_consistent(record)

    credit = [
        l for l in transaction_log.list_logs(db, entry_id=record.record_id, record_kind="outstanding")
        if l.transaction_type == "credit" and l.amount == 200
    ]
    assert len(credit) == 1


def test_flattened_payments(db, make_record):
    first = make_record(amount=1000)
    second = make_record(amount=1000)
    outstanding_service.record_payment(db, first.record_id, amount=100, payment_date=date(2025, 1, 1), mode="cash", actor=OPERATOR)
    outstanding_service.record_payment(db, second.record_id, amount=200, payment_date=date(2025, 2, 1), mode="cash", actor=OPERATOR)

    rows = outstanding_service.list_payments(db)

    assert [(r["record_id"], r["amount"]) for r in rows] == [(second.record_id, 200), (first.record_id, 100)]
    assert rows[0]["serial_number"] == second.serial_number


def test_backfill_assigns_in_date_order(db, make_record):
    record = make_record(amount=1000)
    apply_payments(record, [
        {"date": "2025-01-05", "amount": 100, "mode": "cash"},
        {"date": "2025-01-02", "amount": 100, "mode": "cash"},
        {"date": "2025-01-01", "amount": 50, "mode": "cash", "receipt_no": "SPDJMSJ-2025-00201"},
    ])
    db.commit()

    result = outstanding_service.backfill_receipts(db, actor=ADMIN)

    assert result == {"assigned": 2, "registered": 1, "records_updated": 1}
    db.refresh(record)
    assert [p["receipt_no"] for p in record.payments] == [
        "SPDJMSJ-2025-00203",
        "SPDJMSJ-2025-00202",
        "SPDJMSJ-2025-00201",
    ]

    again = outstanding_service.backfill_receipts(db, actor=ADMIN)
    assert again == {"assigned": 0, "registered": 0, "records_updated": 0}
