# app/db/models/audit_log_model.py
"""
AuditLog Model for tracking admin authentication and back-office actions.
"""

from datetime import datetime
from typing import Optional, Any, Dict, List, Literal
from pydantic import BaseModel, Field

AuditSeverity = Literal["low", "medium", "high", "critical"]
AuditStatus = Literal["success", "failed", "partial"]
AuditCategory = Literal[
    "authentication",
    "authorization",
    "data_modification",
    "data_access",
    "configuration",
    "security",
    "compliance",
    "system",
]


class AuditLog(BaseModel):
    """Audit log model for MongoDB storage"""

    admin_id: Optional[str] = None  # None for attempts on unknown emails
    action: str  # e.g., "login", "failed_login", "update_admin_permissions"
    entity_type: Optional[str] = None  # order, customer, admin, notification, system, payment
    entity_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    severity: AuditSeverity = "low"
    status: AuditStatus = "success"
    category: AuditCategory = "data_modification"
    risk_score: int = 0
    tags: List[str] = Field(default_factory=list)
    correlation_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "admin_id": "507f1f77bcf86cd799439011",
                "action": "failed_login",
                "entity_type": "admin",
                "entity_id": "507f1f77bcf86cd799439011",
                "details": {"notes": "Invalid password"},
                "ip_address": "203.0.113.7",
                "user_agent": "Mozilla/5.0...",
                "severity": "medium",
                "status": "failed",
                "category": "authentication",
                "risk_score": 30,
                "created_at": "2024-01-01T12:00:00Z",
            }
        }
