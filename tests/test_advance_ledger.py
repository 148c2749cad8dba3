from datetime import date, timedelta

import pytest

from app.core.exceptions import (
    InsufficientAdvanceBalanceError,
    LedgerValidationError,
    RecordNotFoundError,
)
from app.services import advance_ledger, transaction_log

from conftest import ADMIN

TODAY = date.today()


def deposit(db, user, amount, **kw):
    kw.setdefault("on_date", TODAY)
    kw.setdefault("payment_mode", "cash")
    return advance_ledger.create_deposit(db, user_id=user.user_id, amount=amount, actor=ADMIN, **kw)


def test_deposit_gets_receipt_and_log(db, user):
    dep = deposit(db, user, 500, payment_mode="upi", attachment_url="https://files/upi.png")

    assert dep.receipt_no == f"SPDJMSJ-{TODAY.year}-00001"
    assert dep.user_name == user.name

    log = transaction_log.list_logs(db, record_kind="advance")[0]
    assert (log.transaction_type, log.entry_id, log.amount) == ("advance_deposit", dep.advance_id, 500)
    assert log.details["receiptNo"] == dep.receipt_no


@pytest.mark.parametrize("kwargs", [
    {"amount": 0},
    {"amount": 100, "payment_mode": "advance_payment"},
    {"amount": 100, "on_date": TODAY + timedelta(days=1)},
])
def test_deposit_validation(db, user, kwargs):
    amount = kwargs.pop("amount")
    with pytest.raises(LedgerValidationError):
        deposit(db, user, amount, **kwargs)


def test_deposit_for_unknown_user(db):
    with pytest.raises(RecordNotFoundError):
        advance_ledger.create_deposit(
            db, user_id=42, amount=100, on_date=TODAY, payment_mode="cash", actor=ADMIN,
        )


def test_balance_example(db, user, make_entry):
    entry = make_entry()
    deposit(db, user, 500)
    assert advance_ledger.remaining_balance(db, user.user_id) == 500

    advance_ledger.add_usage(db, user_id=user.user_id, entry_id=entry.entry_id, amount=500, on_date=TODAY, actor=ADMIN)
    db.commit()
    assert advance_ledger.remaining_balance(db, user.user_id) == 0

    with pytest.raises(InsufficientAdvanceBalanceError):
        advance_ledger.add_usage(db, user_id=user.user_id, entry_id=entry.entry_id, amount=1, on_date=TODAY, actor=ADMIN)
    db.rollback()

    assert advance_ledger.remaining_balance(db, user.user_id) == 0
    assert advance_ledger.raw_balance(db, user.user_id) == 0


def test_draw_recheck_catches_overdraw(db, user, make_entry, monkeypatch):
    entry = make_entry()
    deposit(db, user, 100)

    # first check passes as if a stale balance had been read
    monkeypatch.setattr(advance_ledger, "ensure_sufficient", lambda *a, **kw: 1000)

    with pytest.raises(InsufficientAdvanceBalanceError, match="consumed by another payment"):
        advance_ledger.add_usage(db, user_id=user.user_id, entry_id=entry.entry_id, amount=300, on_date=TODAY, actor=ADMIN)
    db.rollback()

    assert advance_ledger.remaining_balance(db, user.user_id) == 100


def test_balance_is_per_user(db, user, make_user):
    other = make_user(username="suresh", name="Suresh")
    deposit(db, user, 300)
    deposit(db, other, 700)

    assert advance_ledger.remaining_balance(db, user.user_id) == 300
    assert advance_ledger.remaining_balance(db, other.user_id) == 700


def test_list_deposits_filters(db, user, make_user):
    other = make_user(username="suresh", name="Suresh")
    old = deposit(db, user, 100, on_date=TODAY - timedelta(days=10))
    new = deposit(db, user, 200)
    deposit(db, other, 300)

    assert [d.advance_id for d in advance_ledger.list_deposits(db, user_id=user.user_id)] == [new.advance_id, old.advance_id]
    assert [d.advance_id for d in advance_ledger.list_deposits(db, user_id=user.user_id, from_date=TODAY - timedelta(days=1))] == [new.advance_id]
    assert len(advance_ledger.list_deposits(db)) == 3
