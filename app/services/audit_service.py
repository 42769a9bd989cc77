# app/services/audit_service.py
"""
Audit Logging Service for Admin Actions.

Every admin sign-in, failed sign-in and sign-out is recorded here, together
with a category, a severity and a 0-100 risk score derived from the action.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Any, Dict
from zoneinfo import ZoneInfo

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings
from app.db.models.audit_log_model import AuditLog

logger = logging.getLogger(__name__)


class AuditActions:
    """Standard audit action types"""

    # Authentication
    LOGIN = "login"
    LOGOUT = "logout"
    FAILED_LOGIN = "failed_login"
    PASSWORD_RESET = "password_reset"

    # Orders
    CREATE_ORDER = "create_order"
    UPDATE_ORDER = "update_order"
    DELETE_ORDER = "delete_order"
    UPDATE_ORDER_STATUS = "update_order_status"
    FLAG_ORDER = "flag_order"
    ASSIGN_ORDER = "assign_order"

    # Customers
    CREATE_CUSTOMER = "create_customer"
    UPDATE_CUSTOMER = "update_customer"
    DELETE_CUSTOMER = "delete_customer"
    VERIFY_CUSTOMER = "verify_customer"
    FLAG_CUSTOMER = "flag_customer"
    UPDATE_CUSTOMER_RISK = "update_customer_risk"
    APPROVE_DOCUMENT = "approve_document"
    REJECT_DOCUMENT = "reject_document"

    # Admins
    CREATE_ADMIN = "create_admin"
    UPDATE_ADMIN = "update_admin"
    DELETE_ADMIN = "delete_admin"
    UPDATE_ADMIN_PERMISSIONS = "update_admin_permissions"

    # Notifications
    CREATE_NOTIFICATION = "create_notification"
    UPDATE_NOTIFICATION = "update_notification"
    DELETE_NOTIFICATION = "delete_notification"

    # System / payments
    EXPORT_DATA = "export_data"
    IMPORT_DATA = "import_data"
    SYSTEM_CONFIG_CHANGE = "system_config_change"
    BULK_UPDATE = "bulk_update"
    MANUAL_PAYMENT_ENTRY = "manual_payment_entry"
    REFUND_PROCESSED = "refund_processed"
    CHARGEBACK_HANDLED = "chargeback_handled"


ACTION_CATEGORIES = {
    AuditActions.LOGIN: "authentication",
    AuditActions.LOGOUT: "authentication",
    AuditActions.FAILED_LOGIN: "authentication",
    AuditActions.PASSWORD_RESET: "authentication",
    AuditActions.FLAG_ORDER: "security",
    AuditActions.FLAG_CUSTOMER: "security",
    AuditActions.UPDATE_CUSTOMER_RISK: "security",
    AuditActions.VERIFY_CUSTOMER: "compliance",
    AuditActions.APPROVE_DOCUMENT: "compliance",
    AuditActions.REJECT_DOCUMENT: "compliance",
    AuditActions.CREATE_ADMIN: "authorization",
    AuditActions.UPDATE_ADMIN: "authorization",
    AuditActions.DELETE_ADMIN: "authorization",
    AuditActions.UPDATE_ADMIN_PERMISSIONS: "authorization",
    AuditActions.EXPORT_DATA: "data_access",
    AuditActions.SYSTEM_CONFIG_CHANGE: "configuration",
}

ACTION_SEVERITIES = {
    AuditActions.DELETE_ORDER: "high",
    AuditActions.DELETE_CUSTOMER: "high",
    AuditActions.DELETE_ADMIN: "critical",
    AuditActions.UPDATE_ADMIN_PERMISSIONS: "high",
    AuditActions.SYSTEM_CONFIG_CHANGE: "critical",
    AuditActions.MANUAL_PAYMENT_ENTRY: "high",
    AuditActions.FLAG_CUSTOMER: "medium",
    AuditActions.FLAG_ORDER: "medium",
    AuditActions.FAILED_LOGIN: "medium",
}

HIGH_RISK_ACTIONS = {
    AuditActions.DELETE_ORDER,
    AuditActions.DELETE_CUSTOMER,
    AuditActions.DELETE_ADMIN,
    AuditActions.UPDATE_ADMIN_PERMISSIONS,
    AuditActions.SYSTEM_CONFIG_CHANGE,
    AuditActions.MANUAL_PAYMENT_ENTRY,
}

MEDIUM_RISK_ACTIONS = {
    AuditActions.UPDATE_ORDER,
    AuditActions.FLAG_ORDER,
    AuditActions.FLAG_CUSTOMER,
    AuditActions.UPDATE_CUSTOMER_RISK,
    AuditActions.CREATE_ADMIN,
    AuditActions.REFUND_PROCESSED,
}


def _local_hour(at: datetime) -> int:
    # stored timestamps are naive UTC
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return at.astimezone(ZoneInfo(settings.AUDIT_TIMEZONE)).hour


def compute_risk_score(action: str, status: str, severity: str, at: datetime) -> int:
    """
    0-100 risk score. The off-hours bonus uses the hour in AUDIT_TIMEZONE
    (UTC unless configured).
    """
    if action in HIGH_RISK_ACTIONS:
        score = 50
    elif action in MEDIUM_RISK_ACTIONS:
        score = 30
    else:
        score = 10

    if status == "failed":
        score += 20

    if severity == "critical":
        score += 30
    elif severity == "high":
        score += 20

    # off-hours: 22:00 - 06:00
    hour = _local_hour(at)
    if hour >= 22 or hour <= 6:
        score += 15

    return min(score, 100)


async def log_admin_action(
    db: AsyncIOMotorDatabase,
    admin_id: Optional[str],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status: str = "success",
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    severity: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Log an admin action to the audit_logs collection.

    Args:
        db: MongoDB database instance
        admin_id: ID of the admin performing the action (None if unknown)
        action: Action type, see AuditActions
        entity_type: Type of target entity (e.g., "admin", "order")
        entity_id: ID of the target entity
        details: Free-form details (notes, old/new values)
        status: "success", "failed" or "partial"
        ip_address: Admin's IP address
        user_agent: Admin's browser/client info
        severity: Overrides the severity derived from the action

    Returns:
        str: ID of the created audit log entry
    """
    created_at = now or datetime.utcnow()
    severity = severity or ACTION_SEVERITIES.get(action, "low")

    audit_log = AuditLog(
        admin_id=admin_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent,
        severity=severity,
        status=status,
        category=ACTION_CATEGORIES.get(action, "data_modification"),
        risk_score=compute_risk_score(action, status, severity, created_at),
        created_at=created_at,
    )

    result = await db.audit_logs.insert_one(audit_log.model_dump())
    return str(result.inserted_id)


async def get_audit_logs(
    db: AsyncIOMotorDatabase,
    admin_id: Optional[str] = None,
    action: Optional[str] = None,
    category: Optional[str] = None,
    severity: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50
) -> tuple:
    """
    Retrieve audit logs with filtering and pagination.

    Returns:
        tuple: (list of logs, total count)
    """
    query = {}

    if admin_id:
        query["admin_id"] = admin_id
    if action:
        query["action"] = action
    if category:
        query["category"] = category
    if severity:
        query["severity"] = severity
    if date_from or date_to:
        query["created_at"] = {}
        if date_from:
            query["created_at"]["$gte"] = date_from
        if date_to:
            query["created_at"]["$lte"] = date_to

    total = await db.audit_logs.count_documents(query)

    skip = (page - 1) * limit
    cursor = db.audit_logs.find(query).sort("created_at", -1).skip(skip).limit(limit)
    logs = await cursor.to_list(length=limit)

    for log in logs:
        log["_id"] = str(log["_id"])

    return logs, total


async def get_activity_summary(
    db: AsyncIOMotorDatabase,
    days: int = 30,
) -> Dict[str, Any]:
    """
    Counts and risk statistics grouped by action, category and severity.
    """
    date_from = datetime.utcnow() - timedelta(days=days)

    pipeline = [
        {"$match": {"created_at": {"$gte": date_from}}},
        {
            "$group": {
                "_id": {
                    "action": "$action",
                    "category": "$category",
                    "severity": "$severity",
                },
                "count": {"$sum": 1},
                "avg_risk_score": {"$avg": "$risk_score"},
                "max_risk_score": {"$max": "$risk_score"},
            }
        },
        {"$sort": {"count": -1}},
    ]

    cursor = db.audit_logs.aggregate(pipeline)
    results = await cursor.to_list(length=200)

    return {
        "period_days": days,
        "groups": [
            {
                "action": r["_id"]["action"],
                "category": r["_id"]["category"],
                "severity": r["_id"]["severity"],
                "count": r["count"],
                "avg_risk_score": r["avg_risk_score"],
                "max_risk_score": r["max_risk_score"],
            }
            for r in results
        ],
        "total_actions": sum(r["count"] for r in results),
    }
