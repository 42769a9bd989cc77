# app/core/admin_security.py
"""
Admin Authentication and Security Utilities.

Password login for back-office staff, bearer tokens, the admin lockout
policy and role/permission checks. Admin lockout counters live on the admin
document and are unrelated to the customer login governor.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import NotAuthenticatedError, PermissionDeniedError
from app.db.models.admin_user_model import AdminUser
from app.db.mongodb import get_database
from app.services.admin_service import AdminService

ALGORITHM = "HS256"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 scheme for admin routes
oauth2_admin_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/admin/login",
    auto_error=False
)

# action name -> permission flag
ACTION_PERMISSIONS = {
    "viewOrders": "canViewOrders",
    "editOrders": "canEditOrders",
    "deleteOrders": "canDeleteOrders",
    "viewCustomers": "canViewCustomers",
    "editCustomers": "canEditCustomers",
    "viewAnalytics": "canViewAnalytics",
    "manageAdmins": "canManageAdmins",
    "viewAuditLog": "canViewAuditLog",
}


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


# -----------------------------
# LOCKOUT (5 failures -> 2 hours)
# -----------------------------
def is_admin_locked(admin: AdminUser, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    return admin.lock_until is not None and admin.lock_until > now


def register_admin_failure(admin: AdminUser, now: Optional[datetime] = None) -> bool:
    """
    Count a failed password attempt. Returns True if this failure locked the
    account. A lock that has already expired restarts the count at 1.
    """
    now = now or datetime.utcnow()

    if admin.lock_until is not None and admin.lock_until < now:
        admin.lock_until = None
        admin.login_attempts = 1
        return False

    already_locked = is_admin_locked(admin, now)
    admin.login_attempts += 1
    if admin.login_attempts >= settings.ADMIN_MAX_LOGIN_ATTEMPTS and not already_locked:
        admin.lock_until = now + timedelta(hours=settings.ADMIN_LOCKOUT_HOURS)
        return True
    return False


def reset_admin_attempts(admin: AdminUser, now: Optional[datetime] = None) -> None:
    admin.login_attempts = 0
    admin.lock_until = None
    admin.last_login = now or datetime.utcnow()


# -----------------------------
# TOKENS
# -----------------------------
def create_admin_token(admin: AdminUser, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": admin.id,
        "email": admin.email,
        "role": admin.role,
        "scope": "admin",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_admin_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise NotAuthenticatedError("Could not validate admin credentials")

    if payload.get("scope") != "admin" or not payload.get("sub"):
        raise NotAuthenticatedError("Invalid token payload")
    return payload


async def get_current_admin(
    token: Optional[str] = Depends(oauth2_admin_scheme),
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> AdminUser:
    """
    Resolve the bearer token to a live admin. The admin is re-loaded on every
    request so deactivation or role changes apply immediately.
    """
    if not token:
        raise NotAuthenticatedError()

    payload = decode_admin_token(token)
    admin = await AdminService.get_by_id(db, payload["sub"])
    if admin is None or not admin.is_active:
        raise NotAuthenticatedError("Admin account is not available")
    return admin


# -----------------------------
# ROLES / PERMISSIONS
# -----------------------------
def has_permission(admin: Optional[AdminUser], permission: str) -> bool:
    if admin is None:
        return False
    return getattr(admin.permissions, permission, False) is True


def has_role(admin: Optional[AdminUser], roles: Union[str, Iterable[str]]) -> bool:
    if admin is None:
        return False
    role_list = [roles] if isinstance(roles, str) else list(roles)
    return admin.role in role_list


def is_admin_or_manager(admin: Optional[AdminUser]) -> bool:
    return has_role(admin, ["admin", "manager"])


def can_perform_action(admin: Optional[AdminUser], action: str) -> bool:
    permission = ACTION_PERMISSIONS.get(action)
    if permission is None:
        return False
    return has_permission(admin, permission)


def require_permission(permission: str):
    """Dependency factory: the current admin must hold `permission`."""

    async def _dependency(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
        if not has_permission(admin, permission):
            raise PermissionDeniedError()
        return admin

    return _dependency


def require_role(*roles: str):
    """Dependency factory: the current admin must have one of `roles`."""

    async def _dependency(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
        if not has_role(admin, roles):
            raise PermissionDeniedError()
        return admin

    return _dependency
