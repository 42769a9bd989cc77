# app/schemas/admin_schemas.py
"""
Admin Panel Schemas for Request/Response validation.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, EmailStr


# ========================================
# AUTHENTICATION SCHEMAS
# ========================================

class AdminLogin(BaseModel):
    """Admin login request"""
    email: EmailStr
    password: str


class AdminPermissionsOut(BaseModel):
    canViewOrders: bool
    canEditOrders: bool
    canDeleteOrders: bool
    canViewCustomers: bool
    canEditCustomers: bool
    canViewAnalytics: bool
    canManageAdmins: bool
    canViewAuditLog: bool


class AdminProfile(BaseModel):
    """Admin profile response"""
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    permissions: AdminPermissionsOut
    created_at: datetime
    last_login: Optional[datetime] = None
    is_active: bool = True


class AdminTokenResponse(BaseModel):
    """Admin login response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminProfile


# ========================================
# AUDIT LOG SCHEMAS
# ========================================

class AuditLogItem(BaseModel):
    """Audit log item"""
    id: str
    admin_id: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    severity: str
    status: str
    category: str
    risk_score: int
    created_at: datetime


class AuditLogResponse(BaseModel):
    """Paginated audit log response"""
    logs: List[AuditLogItem]
    total: int
    page: int
    limit: int
    pages: int


class ActivitySummaryGroup(BaseModel):
    action: str
    category: str
    severity: str
    count: int
    avg_risk_score: float
    max_risk_score: int


class ActivitySummaryResponse(BaseModel):
    period_days: int
    groups: List[ActivitySummaryGroup]
    total_actions: int


# ========================================
# COMMON RESPONSE SCHEMAS
# ========================================

class SuccessResponse(BaseModel):
    """Generic success response"""
    success: bool = True
    message: str
