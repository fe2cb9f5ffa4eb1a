"""
Shared fixtures: an isolated in-memory database per test, a TestClient
wired to it, and small factories for users with balances.
"""

import os

# settings are read at import time, so configure before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["JWT_SECRET"] = "test-jwt-secret-that-is-long-enough-1234"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PAYOUT_TIMEZONE"] = "UTC"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from core import models  # noqa: F401
from main import app
from users import accounts

ADMIN_KEY = "test-admin-key"
ADMIN_HEADERS = {"x-admin-key": ADMIN_KEY}
PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Create a user directly through the account store, optionally funded."""

    def _make(username: str, balances: dict | None = None, email: str | None = None):
        user = accounts.create_account(db, email or f"{username}@mailbox.org", username, PASSWORD)
        for coin, amount in (balances or {}).items():
            accounts.credit(db, user.id, coin, Decimal(str(amount)))
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    clients = []

    def _make() -> TestClient:
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def login_as(make_client):
    """Return a client holding a session cookie for an existing user."""

    def _login(username: str) -> TestClient:
        client = make_client()
        res = client.post("/api/login", json={"username": username, "password": PASSWORD})
        assert res.status_code == 200, res.text
        return client

    return _login
