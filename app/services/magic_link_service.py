# app/services/magic_link_service.py
"""
Magic-key issuance and verification.

Keys are single use: a successful verification clears the key, and keys
expire after MAGIC_LINK_EXPIRY_MINUTES. Issuing again while a key is still
valid re-sends the same key instead of rotating it.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core import login_governor, trust_store
from app.core.config import settings
from app.core.exceptions import (
    InvalidCredentialError,
    NotifierError,
    ValidationError,
)
from app.db.models.account_model import Account
from app.services.account_service import AccountService, retry_on_conflict
from app.services.email_service import send_email
from app.utils.ip_utils import get_geolocation, is_valid_ip

logger = logging.getLogger(__name__)

MAGIC_LINK_SUBJECT = "Your Magic Login Link"


@dataclass
class MagicLinkResult:
    account: Account
    link: str
    email_sent: bool


def build_magic_link(magic_key: str) -> str:
    base_url = settings.BASE_URL.rstrip("/")
    return f"{base_url}/user/magic-login?{urlencode({'key': magic_key})}"


def ensure_magic_key(account: Account, now: Optional[datetime] = None) -> bool:
    """
    Make sure the account holds a usable key. Returns True if a new key was
    generated, False if the outstanding one is reused.
    """
    if trust_store.has_valid_magic_key(account, now):
        return False
    trust_store.regenerate_magic_key(account, now)
    return True


def render_magic_link_email(link: str, year: Optional[int] = None) -> str:
    year = year or datetime.utcnow().year
    return f"""
  <div style="font-family: Arial, Helvetica, sans-serif; background: #f8fafc; max-width: 520px; margin: 0 auto; padding: 32px 24px; border-radius: 16px; border: 1px solid #e0e7ef;">
    <h1 style="font-size: 2rem; color: #2d3748; margin: 0 0 24px 0; text-align: center;">Dinar Exchange</h1>
    <div style="background: #fff; border-radius: 12px; padding: 24px 16px;">
      <h2 style="color: #4F46E5; font-size: 1.3rem;">Sign In to Your Account</h2>
      <p style="color: #374151;">Hello,<br/>Click the button below to sign in to your Dinar Exchange account.
        The link expires in {settings.MAGIC_LINK_EXPIRY_MINUTES} minutes and works once.</p>
      <p style="text-align: center; margin: 30px 0;">
        <a href="{link}" style="background: #4F46E5; color: #fff; padding: 14px 32px; border-radius: 8px; text-decoration: none; font-weight: 600;">Log In Now</a>
      </p>
      <p style="color: #6b7280;">Or paste this link into your browser:</p>
      <p style="background: #f3f4f6; padding: 10px; border-radius: 4px; word-break: break-all;"><a href="{link}" style="color: #4F46E5;">{link}</a></p>
    </div>
    <p style="margin-top: 32px; color: #6b7280; font-size: 14px; text-align: center;">
      This link is unique to your account and should not be shared.
      If you did not request it, you can ignore this email.<br/>
      &copy; {year} Dinar Exchange. All rights reserved.
    </p>
  </div>
"""


async def send_magic_link_email(email: str, link: str) -> bool:
    """
    Send the link. Delivery failures are logged and reported as False; the
    key is already persisted at this point, so the caller still succeeds.
    """
    try:
        await send_email(to_email=email, subject=MAGIC_LINK_SUBJECT, html=render_magic_link_email(link))
    except NotifierError as e:
        logger.warning(f"Magic link email to {email} was not delivered: {e.message}")
        return False
    logger.info(f"Magic link sent to {email}")
    return True


async def issue_magic_link(
    db: AsyncIOMotorDatabase,
    email: str,
    now: Optional[datetime] = None,
) -> MagicLinkResult:
    """Find-or-create the account, persist a usable key, then email the link once."""

    async def _persist_key() -> Account:
        account = await AccountService.find_or_create(db, email)
        if ensure_magic_key(account, now):
            await AccountService.save(db, account)
        return account

    account = await retry_on_conflict(_persist_key)
    link = build_magic_link(account.magic_key)
    email_sent = await send_magic_link_email(account.email, link)
    return MagicLinkResult(account=account, link=link, email_sent=email_sent)


async def lookup_location(ip: str) -> Optional[dict]:
    if not settings.GEOLOCATION_ENABLED:
        return None
    return await asyncio.to_thread(get_geolocation, ip)


async def verify_magic_key(
    db: AsyncIOMotorDatabase,
    magic_key: Optional[str],
    client_ip: str,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Account:
    """
    Exchange a magic key for its account.

    Unknown, consumed and expired keys all raise the same
    InvalidCredentialError and leave every account untouched. Geolocation
    only runs once the key is known to be valid.
    """
    if not magic_key or not isinstance(magic_key, str):
        raise ValidationError("Magic key is required")

    async def _load_valid() -> Account:
        account = await AccountService.get_by_magic_key(db, magic_key)
        if account is None or not trust_store.has_valid_magic_key(account, now or datetime.utcnow()):
            raise InvalidCredentialError()
        return account

    await _load_valid()
    location = await lookup_location(client_ip)

    async def _consume() -> Account:
        current = now or datetime.utcnow()
        account = await _load_valid()

        if is_valid_ip(client_ip):
            trust_store.add_trusted_ip(account, client_ip, user_agent, now=current, location=location)
        login_governor.record_login_attempt(account, successful=True, now=current)
        trust_store.clear_magic_key(account)
        return await AccountService.save(db, account)

    account = await retry_on_conflict(_consume)
    logger.info(f"Magic link login successful for {account.email} from IP {client_ip}")
    return account
