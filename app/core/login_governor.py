# app/core/login_governor.py
"""
Login attempt governor for the customer (magic-link / auto-login) flow.

States over the account's counters:
    Open    account_locked is False
    Locked  account_locked is True and lock_until is in the future

Expired locks are cleared lazily by the next evaluation. The admin password
flow has its own, stricter governor in app.core.admin_security.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.core.config import settings
from app.db.models.account_model import Account

REASON_ACCOUNT_LOCKED = "account_locked"
REASON_RATE_LIMITED = "rate_limited"


@dataclass
class RateLimitDecision:
    allowed: bool
    reason: Optional[str] = None
    reset_time: Optional[datetime] = None


def _unlock(account: Account) -> None:
    account.account_locked = False
    account.login_attempts = 0
    account.lock_until = None


def evaluate_rate_limit(account: Account, now: Optional[datetime] = None) -> RateLimitDecision:
    """
    Decide whether a login attempt may proceed. May transition the account
    between Open and Locked; the caller persists the account.
    """
    now = now or datetime.utcnow()

    if account.account_locked:
        if account.lock_until is not None and now < account.lock_until:
            return RateLimitDecision(False, REASON_ACCOUNT_LOCKED, account.lock_until)
        _unlock(account)

    window = timedelta(minutes=settings.LOGIN_ATTEMPT_WINDOW_MINUTES)
    is_recent = account.last_login_attempt is not None and (now - account.last_login_attempt) < window

    if is_recent and account.login_attempts >= settings.LOGIN_MAX_ATTEMPTS:
        account.account_locked = True
        account.lock_until = now + timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES)
        return RateLimitDecision(False, REASON_RATE_LIMITED, account.lock_until)

    return RateLimitDecision(True)


def record_login_attempt(account: Account, successful: bool, now: Optional[datetime] = None) -> Account:
    account.last_login_attempt = now or datetime.utcnow()

    if successful:
        _unlock(account)
    else:
        account.login_attempts += 1

    return account
