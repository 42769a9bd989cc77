# app/core/trust_store.py
"""
Trusted-IP lifecycle on an Account.

These functions mutate the Account in memory; callers persist it with
AccountService.save().
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.db.models.account_model import Account, TrustedIPRecord
from app.utils.device_utils import describe_user_agent

logger = logging.getLogger(__name__)

MAGIC_KEY_BYTES = 32  # 256 bits


def generate_magic_key() -> str:
    return secrets.token_hex(MAGIC_KEY_BYTES)


def add_trusted_ip(
    account: Account,
    ip: str,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
    location: Optional[Dict[str, Any]] = None,
) -> TrustedIPRecord:
    """
    Add `ip` to the account's trusted list, or refresh it if already present.

    The list is capped at MAX_TRUSTED_IPS; the least recently used records are
    dropped first. Always updates `last_login_ip`.
    """
    now = now or datetime.utcnow()

    record = next((r for r in account.trusted_ips if r.ip == ip), None)
    if record is not None:
        record.last_used = now
        if user_agent:
            record.user_agent = user_agent
            record.device_name = describe_user_agent(user_agent)
        if location:
            record.location = location
    else:
        record = TrustedIPRecord(
            ip=ip,
            first_seen=now,
            last_used=now,
            user_agent=user_agent,
            device_name=describe_user_agent(user_agent),
            location=location,
        )
        account.trusted_ips.append(record)

        limit = settings.MAX_TRUSTED_IPS
        if len(account.trusted_ips) > limit:
            # stable sort keeps insertion order among equal timestamps
            account.trusted_ips.sort(key=lambda r: r.last_used)
            evicted = account.trusted_ips[:-limit]
            account.trusted_ips = account.trusted_ips[-limit:]
            logger.info(
                f"Evicted {len(evicted)} least recently used trusted IP(s) for {account.email}"
            )

    account.last_login_ip = ip
    return record


def remove_trusted_ip(account: Account, record_id: str) -> TrustedIPRecord:
    for index, record in enumerate(account.trusted_ips):
        if record.id == record_id:
            return account.trusted_ips.pop(index)
    raise NotFoundError("Trusted IP not found")


def clear_trusted_ips(account: Account) -> int:
    removed = len(account.trusted_ips)
    account.trusted_ips = []
    return removed


def regenerate_magic_key(account: Account, now: Optional[datetime] = None) -> str:
    """Rotate the magic key; any link already sent stops working."""
    now = now or datetime.utcnow()
    account.magic_key = generate_magic_key()
    account.magic_key_expires_at = now + timedelta(minutes=settings.MAGIC_LINK_EXPIRY_MINUTES)
    return account.magic_key


def clear_magic_key(account: Account) -> None:
    account.magic_key = None
    account.magic_key_expires_at = None


def has_valid_magic_key(account: Account, now: Optional[datetime] = None) -> bool:
    if not account.magic_key:
        return False
    if account.magic_key_expires_at is None:
        return True
    return (now or datetime.utcnow()) < account.magic_key_expires_at
