import logging
from datetime import date

from sqlalchemy.exc import OperationalError

from app.models.receipt_number_model import IssuedReceiptNumber
from app.services import payment_recorder, receipt_allocator
from app.services.receipt_allocator import allocate_receipt_number
from app.utils.receipt_numbers import ReceiptStream, parse_receipt_no

from conftest import ADMIN

TODAY = date.today()
YEAR = TODAY.year


def _claim(db, *numbers, year=YEAR):
    for n in numbers:
        db.add(IssuedReceiptNumber(
            receipt_no=f"SPDJMSJ-{year}-{n:05d}", year=year, number=n, stream="boli",
        ))
    db.commit()


def test_first_numbers_of_each_stream(db):
    assert allocate_receipt_number(db, ReceiptStream.BOLI, TODAY) == f"SPDJMSJ-{YEAR}-00001"
    assert allocate_receipt_number(db, ReceiptStream.OUTSTANDING, TODAY) == f"SPDJMSJ-{YEAR}-00201"
    assert allocate_receipt_number(db, ReceiptStream.BOLI, TODAY) == f"SPDJMSJ-{YEAR}-00002"


def test_year_comes_from_payment_date(db):
    assert allocate_receipt_number(db, ReceiptStream.BOLI, date(2024, 3, 1)) == "SPDJMSJ-2024-00001"
    assert allocate_receipt_number(db, ReceiptStream.BOLI, date(2025, 3, 1)) == "SPDJMSJ-2025-00001"


def test_full_boli_block_moves_to_next_period(db):
    _claim(db, *range(1, 201))
    assert allocate_receipt_number(db, ReceiptStream.BOLI, TODAY) == f"SPDJMSJ-{YEAR}-00301"


def test_numbers_distinct_across_streams(db):
    issued = []
    for i in range(30):
        stream = ReceiptStream.BOLI if i % 3 else ReceiptStream.OUTSTANDING
        issued.append(allocate_receipt_number(db, stream, TODAY))
        db.commit()

    assert len(set(issued)) == len(issued)
    for r in issued:
        _, n = parse_receipt_no("SPDJMSJ", r)
        assert 1 <= n <= 300


def test_taken_number_is_retried(db, monkeypatch):
    _claim(db, 1)
    # a scan that misses the registry row must still not hand out 00001
    monkeypatch.setattr(receipt_allocator, "collect_used_numbers", lambda *a, **kw: set())

    assert allocate_receipt_number(db, ReceiptStream.BOLI, TODAY) == f"SPDJMSJ-{YEAR}-00002"


def test_deleted_payment_number_is_not_reused(db, make_entry):
    entry = make_entry(amount=1000)
    _, first = payment_recorder.record_payment(
        db, entry.entry_id, amount=100, payment_date=TODAY, mode="cash", actor=ADMIN,
    )
    payment_recorder.delete_payment(db, entry.entry_id, 0, actor=ADMIN)

    _, second = payment_recorder.record_payment(
        db, entry.entry_id, amount=100, payment_date=TODAY, mode="cash", actor=ADMIN,
    )
    assert first["receipt_no"] == f"SPDJMSJ-{YEAR}-00001"
    assert second["receipt_no"] == f"SPDJMSJ-{YEAR}-00002"


def test_scan_failure_falls_back_to_time_number(db, monkeypatch, caplog):
    def broken_scan(*args, **kwargs):
        raise OperationalError("SELECT payments FROM entries", {}, Exception("connection lost"))

    monkeypatch.setattr(receipt_allocator, "collect_used_numbers", broken_scan)

    with caplog.at_level(logging.ERROR, logger="app.services.receipt_allocator"):
        receipt_no = allocate_receipt_number(db, ReceiptStream.BOLI, TODAY)

    assert parse_receipt_no("SPDJMSJ", receipt_no)[0] == YEAR
    assert any(
        receipt_allocator.FALLBACK_MARKER in r.getMessage() and r.levelno == logging.ERROR
        for r in caplog.records
    )


def test_used_numbers_include_advance_deposits(db, user):
    from app.services import advance_ledger

    deposit = advance_ledger.create_deposit(
        db, user_id=user.user_id, amount=500, on_date=TODAY, payment_mode="cash", actor=ADMIN,
    )
    assert deposit.receipt_no == f"SPDJMSJ-{YEAR}-00001"
    assert 1 in receipt_allocator.collect_used_numbers(db, YEAR)
