# app/services/trusted_ip_service.py

import logging
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core import trust_store
from app.core.exceptions import NotAuthenticatedError
from app.db.models.account_model import Account
from app.services.account_service import AccountService, retry_on_conflict

logger = logging.getLogger(__name__)


class TrustedIPService:
    """
    Service for the signed-in customer managing their own trusted IPs.

    Every mutation re-reads the account and saves it conditionally, so a
    concurrent login cannot be overwritten by a settings change.
    """

    @staticmethod
    def list_trusted_ips(account: Account, current_ip: str) -> dict:
        """
        Trusted IPs of `account` formatted for the settings page.
        `isCurrent` marks the record matching the caller's IP exactly.
        """
        trusted_ips = [
            {
                "id": record.id,
                "ip": record.ip,
                "firstSeen": record.first_seen,
                "lastUsed": record.last_used,
                "userAgent": record.user_agent,
                "deviceName": record.device_name,
                "location": record.location,
                "isCurrent": record.ip == current_ip,
            }
            for record in account.trusted_ips
        ]
        return {
            "autoLoginEnabled": account.auto_login_enabled,
            "trustedIPs": trusted_ips,
            "currentIP": current_ip,
            "lastLoginIP": account.last_login_ip,
            "totalTrustedIPs": len(trusted_ips),
        }

    @staticmethod
    async def _update(db: AsyncIOMotorDatabase, account_id: str, mutate) -> tuple:
        """Re-read, apply `mutate(account)`, save. Returns (account, mutate result)."""

        async def _operation():
            account = await AccountService.get_by_id(db, account_id)
            if account is None:
                raise NotAuthenticatedError("Account not found")
            result = mutate(account)
            await AccountService.save(db, account)
            return account, result

        return await retry_on_conflict(_operation)

    @staticmethod
    async def set_auto_login(db: AsyncIOMotorDatabase, account_id: str, enabled: bool) -> Account:
        def _mutate(account: Account):
            account.auto_login_enabled = enabled

        account, _ = await TrustedIPService._update(db, account_id, _mutate)
        logger.info(f"Auto-login {'enabled' if enabled else 'disabled'} for {account.email}")
        return account

    @staticmethod
    async def remove_ip(db: AsyncIOMotorDatabase, account_id: str, record_id: str) -> Account:
        """Raises NotFoundError when `record_id` is not on the account."""
        account, removed = await TrustedIPService._update(
            db, account_id, lambda a: trust_store.remove_trusted_ip(a, record_id)
        )
        logger.info(f"Removed trusted IP {removed.ip} for {account.email}")
        return account

    @staticmethod
    async def clear_all(db: AsyncIOMotorDatabase, account_id: str) -> int:
        account, removed = await TrustedIPService._update(db, account_id, trust_store.clear_trusted_ips)
        logger.info(f"Cleared {removed} trusted IP(s) for {account.email}")
        return removed

    @staticmethod
    async def regenerate_magic_key(
        db: AsyncIOMotorDatabase,
        account_id: str,
        now: Optional[datetime] = None,
    ) -> Account:
        account, _ = await TrustedIPService._update(
            db, account_id, lambda a: trust_store.regenerate_magic_key(a, now)
        )
        logger.info(f"Magic key regenerated for {account.email}")
        return account
