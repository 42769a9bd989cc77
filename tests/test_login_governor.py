"""
Tests for the customer login attempt governor.

Run with: python -m pytest tests/test_login_governor.py -v
"""

from datetime import timedelta

from app.core.login_governor import (
    REASON_ACCOUNT_LOCKED,
    REASON_RATE_LIMITED,
    evaluate_rate_limit,
    record_login_attempt,
)
from app.db.models.account_model import Account
from conftest import NOW


def _account_with_failures(count: int, last_attempt):
    return Account(email="user@example.com", login_attempts=count, last_login_attempt=last_attempt)


def test_fresh_account_is_allowed():
    decision = evaluate_rate_limit(Account(email="user@example.com"), NOW)
    assert decision.allowed
    assert decision.reason is None


def test_five_recent_failures_lock_the_account():
    account = _account_with_failures(5, NOW - timedelta(minutes=1))

    decision = evaluate_rate_limit(account, NOW)

    assert not decision.allowed
    assert decision.reason == REASON_RATE_LIMITED
    assert decision.reset_time == NOW + timedelta(minutes=15)
    assert account.account_locked
    assert account.lock_until == NOW + timedelta(minutes=15)


def test_locked_account_reports_account_locked():
    account = _account_with_failures(6, NOW - timedelta(minutes=1))
    evaluate_rate_limit(account, NOW)

    decision = evaluate_rate_limit(account, NOW + timedelta(minutes=5))

    assert not decision.allowed
    assert decision.reason == REASON_ACCOUNT_LOCKED
    assert decision.reset_time == NOW + timedelta(minutes=15)


def test_expired_lock_is_cleared_on_next_evaluation():
    account = _account_with_failures(5, NOW - timedelta(minutes=1))
    evaluate_rate_limit(account, NOW)

    decision = evaluate_rate_limit(account, NOW + timedelta(minutes=16))

    assert decision.allowed
    assert account.login_attempts == 0
    assert not account.account_locked
    assert account.lock_until is None


def test_old_failures_outside_window_do_not_lock():
    account = _account_with_failures(7, NOW - timedelta(minutes=5))
    decision = evaluate_rate_limit(account, NOW)
    assert decision.allowed
    assert not account.account_locked


def test_four_failures_are_still_allowed():
    account = _account_with_failures(4, NOW - timedelta(seconds=30))
    assert evaluate_rate_limit(account, NOW).allowed


def test_failed_attempt_increments_counter():
    account = Account(email="user@example.com")
    record_login_attempt(account, successful=False, now=NOW)
    record_login_attempt(account, successful=False, now=NOW)
    assert account.login_attempts == 2
    assert account.last_login_attempt == NOW


def test_success_resets_governor_state():
    account = Account(
        email="user@example.com",
        login_attempts=9,
        account_locked=True,
        lock_until=NOW + timedelta(minutes=10),
    )

    record_login_attempt(account, successful=True, now=NOW)

    assert account.login_attempts == 0
    assert not account.account_locked
    assert account.lock_until is None
    assert account.last_login_attempt == NOW
