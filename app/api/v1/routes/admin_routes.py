# app/api/v1/routes/admin_routes.py
"""
Admin Panel API Routes.

Password sign-in for back-office staff, the admin profile and the audit log.
"""

import math
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.admin_security import (
    create_admin_token,
    get_current_admin,
    is_admin_locked,
    register_admin_failure,
    require_permission,
    require_role,
    reset_admin_attempts,
    verify_password,
)
from app.core.config import settings
from app.core.exceptions import NotAuthenticatedError
from app.db.models.admin_user_model import AdminUser
from app.db.mongodb import get_database
from app.schemas.admin_schemas import (
    ActivitySummaryResponse,
    AdminLogin,
    AdminProfile,
    AdminTokenResponse,
    AuditLogItem,
    AuditLogResponse,
    SuccessResponse,
)
from app.services.admin_service import AdminService
from app.services.audit_service import (
    AuditActions,
    get_activity_summary,
    get_audit_logs,
    log_admin_action,
)
from app.utils.ip_utils import get_client_ip, get_user_agent

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_ADMIN_CREDENTIALS = "Invalid email or password"


# ========================================
# HELPER FUNCTIONS
# ========================================

def admin_profile(admin: AdminUser) -> AdminProfile:
    return AdminProfile(
        id=admin.id,
        email=admin.email,
        first_name=admin.first_name,
        last_name=admin.last_name,
        role=admin.role,
        permissions=admin.permissions.model_dump(),
        created_at=admin.created_at,
        last_login=admin.last_login,
        is_active=admin.is_active,
    )


# ========================================
# AUTHENTICATION ENDPOINTS
# ========================================

@router.post("/login", response_model=AdminTokenResponse)
async def admin_login(
    credentials: AdminLogin,
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Admin password login.
    Unknown email, locked or inactive account and wrong password all answer
    the same 401; the audit entry records which one it was.
    """
    ip_address = get_client_ip(request)
    user_agent = get_user_agent(request)
    now = datetime.utcnow()

    async def _reject(admin: Optional[AdminUser], reason: str):
        await log_admin_action(
            db,
            admin.id if admin else None,
            AuditActions.FAILED_LOGIN,
            entity_type="admin",
            entity_id=admin.id if admin else None,
            details={"email": credentials.email.lower(), "reason": reason},
            status="failed",
            ip_address=ip_address,
            user_agent=user_agent,
            now=now,
        )
        logger.warning(f"Admin login failed for {credentials.email} ({reason}) from IP {ip_address}")
        raise NotAuthenticatedError(INVALID_ADMIN_CREDENTIALS)

    admin = await AdminService.get_by_email(db, credentials.email)
    if admin is None:
        await _reject(None, "unknown_email")

    if is_admin_locked(admin, now):
        await _reject(admin, "account_locked")

    if not admin.is_active:
        await _reject(admin, "inactive")

    if not verify_password(credentials.password, admin.password):
        locked_now = register_admin_failure(admin, now)
        await AdminService.save_login_state(db, admin)
        if locked_now:
            logger.warning(f"Admin {admin.email} locked until {admin.lock_until}")
        await _reject(admin, "invalid_password")

    reset_admin_attempts(admin, now)
    await AdminService.save_login_state(db, admin)

    await log_admin_action(
        db, admin.id,
        AuditActions.LOGIN,
        entity_type="admin", entity_id=admin.id,
        ip_address=ip_address, user_agent=user_agent,
        now=now,
    )
    logger.info(f"Admin {admin.email} logged in from IP {ip_address}")

    return AdminTokenResponse(
        access_token=create_admin_token(admin),
        expires_in=settings.ADMIN_TOKEN_EXPIRE_MINUTES * 60,
        admin=admin_profile(admin),
    )


@router.post("/logout", response_model=SuccessResponse)
async def admin_logout(
    request: Request,
    admin: AdminUser = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Tokens are stateless; logout is recorded for the audit trail."""
    await log_admin_action(
        db, admin.id,
        AuditActions.LOGOUT,
        entity_type="admin", entity_id=admin.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=AdminProfile)
async def get_admin_profile(admin: AdminUser = Depends(get_current_admin)):
    return admin_profile(admin)


# ========================================
# AUDIT LOG ENDPOINTS
# ========================================

@router.get("/audit-logs", response_model=AuditLogResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    admin_id: Optional[str] = None,
    action_type: Optional[str] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    admin: AdminUser = Depends(require_permission("canViewAuditLog")),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Get paginated audit logs, newest first.
    """
    logs, total = await get_audit_logs(
        db,
        admin_id=admin_id,
        action=action_type,
        category=category,
        severity=severity,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit
    )

    pages = math.ceil(total / limit) if total > 0 else 1

    return AuditLogResponse(
        logs=[
            AuditLogItem(
                id=log["_id"],
                admin_id=log.get("admin_id"),
                action=log["action"],
                entity_type=log.get("entity_type"),
                entity_id=log.get("entity_id"),
                details=log.get("details", {}),
                ip_address=log.get("ip_address"),
                user_agent=log.get("user_agent"),
                severity=log.get("severity", "low"),
                status=log.get("status", "success"),
                category=log.get("category", "data_modification"),
                risk_score=log.get("risk_score", 0),
                created_at=log["created_at"]
            )
            for log in logs
        ],
        total=total,
        page=page,
        limit=limit,
        pages=pages
    )


@router.get("/audit-logs/summary", response_model=ActivitySummaryResponse)
async def audit_log_summary(
    days: int = Query(30, ge=1, le=365),
    admin: AdminUser = Depends(require_role("admin", "manager")),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await get_activity_summary(db, days=days)
