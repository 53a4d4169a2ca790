import os
import pathlib
import sys
import tempfile
from datetime import datetime, timezone

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


def pytest_configure():
    if os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL"):
        return
    temp_dir = tempfile.mkdtemp(prefix="ledger-core-tests-")
    db_path = pathlib.Path(temp_dir) / "pytest.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"


@pytest.fixture()
def db_session():
    from backend.app.db import Base, SessionLocal, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def api_client(db_session):
    from backend.app.db import get_db
    from backend.app.main import app
    from fastapi.testclient import TestClient

    def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)


def _leg_input(leg):
    from backend.app.services.event_service import LegInput

    instrument, amount, *other_account = leg
    account_id = other_account[0].id if other_account else None
    return LegInput(instrument_id=instrument.id, amount_minor=amount, account_id=account_id)


class LedgerBook:
    """Seeds one user with accounts and instruments and posts events through the event service."""

    def __init__(self, db):
        from backend.app.models import User

        self.db = db
        self.user = User()
        db.add(self.user)
        db.flush()
        self._seq = 0

    def account(self, name: str):
        from backend.app.models import Account

        acct = Account(user_id=self.user.id, name=name)
        self.db.add(acct)
        self.db.flush()
        return acct

    def instrument(self, code: str, minor_unit: int = 2, kind: str = "fiat"):
        from backend.app.models import Instrument

        ins = Instrument(user_id=self.user.id, code=code, kind=kind, minor_unit=minor_unit, name=code)
        self.db.add(ins)
        self.db.flush()
        return ins

    def post(self, account, legs, *, description=None, external_id=None, effective_at=None, **kwargs):
        from backend.app.services.event_service import record_event

        self._seq += 1
        return record_event(
            self.db,
            user_id=self.user.id,
            account_id=account.id,
            event_type=kwargs.pop("event_type", "purchase"),
            effective_at=effective_at or datetime(2025, 1, 1, tzinfo=timezone.utc),
            description=description if description is not None else f"event {self._seq}",
            external_id=external_id,
            legs=[_leg_input(leg) for leg in legs],
            **kwargs,
        )


@pytest.fixture()
def book(db_session):
    return LedgerBook(db_session)


@pytest.fixture()
def book_factory(db_session):
    return lambda: LedgerBook(db_session)
