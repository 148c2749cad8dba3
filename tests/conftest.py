from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401  register every table on Base.metadata
from app.core.actor import Actor
from app.models.user_model import User
from app.services import entry_service
from app.utils.database import Base, get_db

ADMIN = Actor(user_id=1, username="admin", role="admin")
OPERATOR = Actor(user_id=2, username="operator", role="operator")
VIEWER = Actor(user_id=3, username="viewer", role="viewer")

ADMIN_HEADERS = {"X-Actor-Id": "1", "X-Actor-Name": "admin", "X-Actor-Role": "admin"}
OPERATOR_HEADERS = {"X-Actor-Id": "2", "X-Actor-Name": "operator", "X-Actor-Role": "operator"}
VIEWER_HEADERS = {"X-Actor-Id": "3", "X-Actor-Name": "viewer", "X-Actor-Role": "viewer"}


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # pysqlite: let SQLAlchemy own BEGIN so SAVEPOINT works, and take the
    # write lock up front so concurrent writers queue instead of failing
    @event.listens_for(eng, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(username="ramesh", name="Ramesh Jain", mobile="9876543210", role="viewer"):
        user = User(username=username, name=name, mobile=mobile, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_entry(db, user):
    def _make(amount=1000, quantity=1, owner=None, auction_date=None, description="Shanti dhara boli"):
        return entry_service.create_entry(
            db,
            user_id=(owner or user).user_id,
            description=description,
            amount=amount,
            quantity=quantity,
            auction_date=auction_date or date.today(),
            actor=ADMIN,
        )

    return _make


@pytest.fixture
def client(session_factory):
    from main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    # no context manager: startup seeding would hit the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def assert_totals_consistent(target):
    live = [p for p in target.payments if p.get("status") != "deleted"]
    received = sum(p["amount"] for p in live)
    assert target.received_amount == received
    assert target.pending_amount == max(0, target.total_due - received)
    if received == 0:
        assert target.status == "pending"
    elif received < target.total_due:
        assert target.status == "partial"
    else:
        assert target.status == "full"
