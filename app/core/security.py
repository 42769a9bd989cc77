# app/core/security.py

import hashlib
import secrets

from fastapi import Response

from app.core.config import settings

SESSION_TOKEN_BYTES = 32


# -----------------------------
# SESSION TOKENS
# -----------------------------
def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    # random tokens, so a plain SHA-256 is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_max_age_seconds() -> int:
    return settings.SESSION_MAX_AGE_DAYS * 24 * 60 * 60


# -----------------------------
# SESSION COOKIE
# -----------------------------
def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=session_max_age_seconds(),
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
