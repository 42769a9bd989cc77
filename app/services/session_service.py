# app/services/session_service.py

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Cookie, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings
from app.core.exceptions import NotAuthenticatedError
from app.core.security import generate_session_token, hash_session_token
from app.db.models.account_model import Account
from app.db.models.session_model import SessionModel
from app.db.mongodb import get_database
from app.services.account_service import AccountService

logger = logging.getLogger(__name__)


async def create_session(
    db: AsyncIOMotorDatabase,
    account_id: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    login_method: str = "magic_link",
) -> str:
    """
    Creates a server-side session and returns the RAW token (to set as cookie).
    Only the hash is stored in DB.
    """
    raw_token = generate_session_token()
    now = datetime.utcnow()

    session = SessionModel(
        account_id=account_id,
        token_hash=hash_session_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(days=settings.SESSION_MAX_AGE_DAYS),
        ip_address=ip_address,
        user_agent=user_agent,
        login_method=login_method,
    )
    await db.sessions.insert_one(session.model_dump())
    return raw_token


async def get_account_for_session(db: AsyncIOMotorDatabase, raw_token: Optional[str]) -> Optional[Account]:
    if not raw_token:
        return None

    session = await db.sessions.find_one({
        "token_hash": hash_session_token(raw_token),
        "revoked": False,
        "expires_at": {"$gt": datetime.utcnow()},
    })
    if not session:
        return None

    return await AccountService.get_by_id(db, session["account_id"])


async def revoke_session(db: AsyncIOMotorDatabase, raw_token: Optional[str]) -> bool:
    if not raw_token:
        return False
    result = await db.sessions.update_one(
        {"token_hash": hash_session_token(raw_token), "revoked": False},
        {"$set": {"revoked": True, "revoked_at": datetime.utcnow()}},
    )
    return result.modified_count > 0


async def revoke_all_sessions(db: AsyncIOMotorDatabase, account_id: str) -> int:
    result = await db.sessions.update_many(
        {"account_id": account_id, "revoked": False},
        {"$set": {"revoked": True, "revoked_at": datetime.utcnow()}},
    )
    if result.modified_count:
        logger.info(f"Revoked {result.modified_count} session(s) for account {account_id}")
    return result.modified_count


async def get_current_account(
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> Account:
    """Dependency: the account bound to the session cookie, or 401."""
    account = await get_account_for_session(db, session_token)
    if account is None:
        raise NotAuthenticatedError("Not authenticated")
    return account
