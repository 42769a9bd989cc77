# app/services/account_service.py

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.core.config import settings
from app.core.exceptions import ConcurrentUpdateError, PersistenceError
from app.db.models.account_model import Account

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """
    Persistence for customer accounts (`accounts` collection).

    Writes are conditional on the `version` read, so two requests racing on
    the same account cannot silently overwrite each other's counters or
    trusted IPs.
    """

    @staticmethod
    async def get_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[Account]:
        doc = await db.accounts.find_one({"email": normalize_email(email)})
        return Account.from_document(doc)

    @staticmethod
    async def get_by_id(db: AsyncIOMotorDatabase, account_id: str) -> Optional[Account]:
        try:
            oid = ObjectId(account_id)
        except (InvalidId, TypeError):
            return None
        doc = await db.accounts.find_one({"_id": oid})
        return Account.from_document(doc)

    @staticmethod
    async def get_by_magic_key(db: AsyncIOMotorDatabase, magic_key: str) -> Optional[Account]:
        doc = await db.accounts.find_one({"magic_key": magic_key})
        return Account.from_document(doc)

    @staticmethod
    async def find_or_create(db: AsyncIOMotorDatabase, email: str) -> Account:
        """
        Return the account for `email`, creating it on first sight.
        """
        email = normalize_email(email)
        existing = await AccountService.get_by_email(db, email)
        if existing is not None:
            return existing

        account = Account(email=email)
        try:
            result = await db.accounts.insert_one(account.to_document())
        except DuplicateKeyError:
            # created by a concurrent request
            return await AccountService.get_by_email(db, email)

        account.id = str(result.inserted_id)
        logger.info(f"Created account for {email}")
        return account

    @staticmethod
    async def save(db: AsyncIOMotorDatabase, account: Account) -> Account:
        """
        Write the account back if nobody else has since the read.
        Raises ConcurrentUpdateError otherwise.
        """
        expected_version = account.version
        account.version = expected_version + 1
        account.updated_at = datetime.utcnow()

        result = await db.accounts.replace_one(
            {"_id": ObjectId(account.id), "version": expected_version},
            account.to_document(),
        )
        if result.matched_count == 0:
            account.version = expected_version
            raise ConcurrentUpdateError()
        return account


async def retry_on_conflict(operation: Callable[[], Awaitable[T]]) -> T:
    """
    Re-run a read-modify-write `operation` when its conditional save loses a race.
    Running out of retries surfaces as a generic PersistenceError.
    """
    retries = max(1, settings.ACCOUNT_SAVE_RETRIES)
    for attempt in range(1, retries + 1):
        try:
            return await operation()
        except ConcurrentUpdateError as e:
            if attempt == retries:
                logger.error(f"Account write still conflicting after {retries} attempts")
                raise PersistenceError() from e
            logger.info(f"Account write conflict, retrying ({attempt}/{retries})")
