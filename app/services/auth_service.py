# app/services/auth_service.py
"""
Login entry point for customers.

    Start -> RateLimited      governor refused the attempt (recorded as failed)
          -> AutoLoggedIn     auto-login enabled and the IP matches a trusted record
          -> MagicLinkSent    everything else

Consuming the emailed link is a separate request handled by
magic_link_service.verify_magic_key().
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core import login_governor, trust_store
from app.core.config import settings
from app.core.exceptions import RateLimitedError, ValidationError
from app.db.models.account_model import Account
from app.services import session_service
from app.services.account_service import AccountService, normalize_email, retry_on_conflict
from app.services.magic_link_service import build_magic_link, ensure_magic_key, send_magic_link_email
from app.utils.ip_utils import TrustMatch, check_trusted_ip

logger = logging.getLogger(__name__)

AUTO_LOGGED_IN = "auto_logged_in"
MAGIC_LINK_SENT = "magic_link_sent"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")


@dataclass
class LoginOutcome:
    status: str
    account: Account
    match_type: str = "none"
    session_token: Optional[str] = None
    email_sent: bool = False


def validate_email(email: Optional[str]) -> str:
    if not email or not isinstance(email, str):
        raise ValidationError("Email required")
    email = normalize_email(email)
    if not _EMAIL_RE.match(email):
        raise ValidationError("Valid email is required.")
    return email


async def login(
    db: AsyncIOMotorDatabase,
    email: Optional[str],
    client_ip: str,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LoginOutcome:
    """
    Run governor -> trust matcher -> (auto-login | magic link) for `email`.
    Raises RateLimitedError when the governor refuses the attempt.
    """
    email = validate_email(email)

    async def _decide() -> Tuple[Account, login_governor.RateLimitDecision, TrustMatch]:
        current = now or datetime.utcnow()
        account = await AccountService.find_or_create(db, email)

        decision = login_governor.evaluate_rate_limit(account, current)
        if not decision.allowed:
            login_governor.record_login_attempt(account, successful=False, now=current)
            await AccountService.save(db, account)
            return account, decision, TrustMatch(is_match=False)

        match = TrustMatch(is_match=False)
        if account.auto_login_enabled and account.trusted_ips:
            match = check_trusted_ip(client_ip, account.trusted_ips)

        if match.is_match:
            trust_store.add_trusted_ip(account, client_ip, user_agent, now=current)
            login_governor.record_login_attempt(account, successful=True, now=current)
        else:
            ensure_magic_key(account, current)
            if settings.MAGIC_LINK_REQUEST_COUNTS_AS_ATTEMPT:
                login_governor.record_login_attempt(account, successful=False, now=current)
            else:
                account.last_login_attempt = current

        await AccountService.save(db, account)
        return account, decision, match

    account, decision, match = await retry_on_conflict(_decide)

    if not decision.allowed:
        logger.warning(
            f"Login for {account.email} refused ({decision.reason}) until {decision.reset_time}, IP {client_ip}"
        )
        raise RateLimitedError(decision.reason, decision.reset_time)

    if match.is_match:
        token = await session_service.create_session(
            db, account.id, ip_address=client_ip, user_agent=user_agent, login_method="auto_login"
        )
        logger.info(f"Auto-login for {account.email} from IP {client_ip} ({match.match_type} match)")
        return LoginOutcome(
            status=AUTO_LOGGED_IN,
            account=account,
            match_type=match.match_type,
            session_token=token,
        )

    link = build_magic_link(account.magic_key)
    email_sent = await send_magic_link_email(account.email, link)
    return LoginOutcome(status=MAGIC_LINK_SENT, account=account, email_sent=email_sent)
