# app/api/v1/routes/auth_route.py

import logging
from typing import Optional, Union

from fastapi import APIRouter, Cookie, Depends, Request, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings
from app.core.security import clear_session_cookie, set_session_cookie
from app.db.models.account_model import Account
from app.db.mongodb import get_database
from app.schemas.auth_schema import (
    AutoLoginResponse,
    LoginRequest,
    MagicLinkSentResponse,
    SendMagicLinkRequest,
    SessionCheckResponse,
    VerifyMagicLinkRequest,
    VerifyMagicLinkResponse,
)
from app.services import auth_service, session_service
from app.services.magic_link_service import issue_magic_link, verify_magic_key
from app.services.session_service import get_current_account
from app.utils.ip_utils import get_client_ip, get_user_agent, is_valid_ip

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


# -----------------------------
# LOGIN ENTRY POINT
# -----------------------------
@router.post("/login", response_model=Union[AutoLoginResponse, MagicLinkSentResponse])
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    Auto-login from a trusted IP, otherwise email a magic link.
    Governor refusals surface as 429 through RateLimitedError.
    """
    client_ip = get_client_ip(request)
    outcome = await auth_service.login(db, payload.email, client_ip, get_user_agent(request))

    if outcome.status == auth_service.AUTO_LOGGED_IN:
        set_session_cookie(response, outcome.session_token)
        return {
            "autoLoggedIn": True,
            "message": "Logged in from a trusted IP",
            "user": outcome.account.public_profile(),
            "matchType": outcome.match_type,
        }

    return {
        "magicLinkSent": True,
        "message": "Magic link sent to your email",
        "email": outcome.account.email,
    }


# -----------------------------
# MAGIC LINK
# -----------------------------
@router.post("/send-magic-link")
async def send_magic_link(
    payload: SendMagicLinkRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    email = auth_service.validate_email(payload.email)
    result = await issue_magic_link(db, email)
    return {"message": "Magic link sent successfully", "email": result.account.email}


@router.post("/verify-magic-link", response_model=VerifyMagicLinkResponse)
async def verify_magic_link(
    payload: VerifyMagicLinkRequest,
    request: Request,
    response: Response,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    client_ip = get_client_ip(request)
    user_agent = get_user_agent(request)

    account = await verify_magic_key(db, payload.magicKey, client_ip, user_agent)
    token = await session_service.create_session(
        db, account.id, ip_address=client_ip, user_agent=user_agent, login_method="magic_link"
    )
    set_session_cookie(response, token)

    return {
        "message": "Login successful",
        "user": account.public_profile(),
        "newTrustedIP": client_ip if is_valid_ip(client_ip) else None,
        "autoLoginEnabled": account.auto_login_enabled,
    }


# -----------------------------
# SESSION
# -----------------------------
@router.get("/session", response_model=SessionCheckResponse)
async def session_check(account: Account = Depends(get_current_account)):
    return {"authenticated": True, "user": account.public_profile()}


@router.post("/logout")
async def logout(
    response: Response,
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await session_service.revoke_session(db, session_token)
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}
