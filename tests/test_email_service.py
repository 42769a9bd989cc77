"""
Tests for the Resend email wrapper: timeouts and provider errors surface as
NotifierError, and the magic-link issuer survives both.

Run with: python -m pytest tests/test_email_service.py -v
"""

import time

import pytest
import resend

from app.core.exceptions import NotifierError
from app.services.account_service import AccountService
from app.services.email_service import send_email
from app.services.magic_link_service import issue_magic_link
from conftest import NOW


@pytest.fixture
def short_timeout(monkeypatch):
    monkeypatch.setattr("app.services.email_service.settings.EMAIL_SEND_TIMEOUT_SECONDS", 0.05)


@pytest.fixture
def slow_resend(monkeypatch, short_timeout):
    def _slow_send(payload):
        time.sleep(0.3)
        return {"id": "late"}

    monkeypatch.setattr(resend.Emails, "send", _slow_send)


@pytest.fixture
def broken_resend(monkeypatch):
    def _broken_send(payload):
        raise RuntimeError("resend is down")

    monkeypatch.setattr(resend.Emails, "send", _broken_send)


async def test_payload_is_sent_through_resend(monkeypatch):
    sent = []
    monkeypatch.setattr(resend.Emails, "send", lambda payload: sent.append(payload))
    monkeypatch.setattr("app.services.email_service.settings.EMAIL_FROM", "noreply@dinar.example")

    await send_email("user@example.com", "Hello", "<p>hi</p>")

    assert sent == [{
        "from": "noreply@dinar.example",
        "to": "user@example.com",
        "subject": "Hello",
        "html": "<p>hi</p>",
    }]


async def test_slow_send_times_out(slow_resend):
    with pytest.raises(NotifierError) as exc_info:
        await send_email("user@example.com", "Hello", "<p>hi</p>")
    assert exc_info.value.message == "Email delivery timed out"


async def test_provider_error_becomes_notifier_error(broken_resend):
    with pytest.raises(NotifierError):
        await send_email("user@example.com", "Hello", "<p>hi</p>")


async def test_issue_survives_timeout(db, slow_resend):
    result = await issue_magic_link(db, "user@example.com", now=NOW)

    assert result.email_sent is False
    stored = await AccountService.get_by_email(db, "user@example.com")
    assert stored.magic_key == result.account.magic_key
    assert stored.magic_key_expires_at is not None


async def test_issue_survives_provider_error(db, broken_resend):
    result = await issue_magic_link(db, "user@example.com", now=NOW)

    assert result.email_sent is False
    stored = await AccountService.get_by_email(db, "user@example.com")
    assert stored.magic_key == result.account.magic_key
