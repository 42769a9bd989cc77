"""
Shared test fixtures.

Provides an in-memory Motor-compatible database (mongomock-motor), a captured
outbox in place of Resend, and a FastAPI TestClient wired to both.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.core.exceptions import NotifierError
from app.db.models.account_model import Account, TrustedIPRecord

NOW = datetime(2024, 6, 3, 12, 0, 0)


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    return client["dinar_exchange_test"]


@pytest.fixture
def outbox(monkeypatch):
    """Capture outgoing emails instead of calling Resend."""
    sent = []

    async def _fake_send_email(to_email: str, subject: str, html: str) -> None:
        sent.append({"to": to_email, "subject": subject, "html": html})

    monkeypatch.setattr("app.services.magic_link_service.send_email", _fake_send_email)
    return sent


@pytest.fixture
def failing_outbox(monkeypatch):
    """Every send fails like a Resend outage."""
    attempts = []

    async def _failing_send_email(to_email: str, subject: str, html: str) -> None:
        attempts.append(to_email)
        raise NotifierError("Email delivery failed")

    monkeypatch.setattr("app.services.magic_link_service.send_email", _failing_send_email)
    return attempts


@pytest.fixture
def client(db, outbox):
    """TestClient without lifespan events; startup would dial a real MongoDB."""
    from app.main import app
    from app.db.mongodb import get_database

    async def _override_get_database():
        return db

    app.dependency_overrides[get_database] = _override_get_database
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


async def insert_account(db, email: str = "user@example.com", **fields) -> Account:
    """Persist an account built from `fields` and return it with its id."""
    account = Account(email=email, **fields)
    result = await db.accounts.insert_one(account.to_document())
    account.id = str(result.inserted_id)
    return account


def trusted(ip: str, last_used: datetime = NOW, **fields) -> TrustedIPRecord:
    return TrustedIPRecord(ip=ip, first_seen=last_used, last_used=last_used, **fields)
