# app/db/models/admin_user_model.py
"""
Admin user model for the back office.

Admins sign in with email + password and carry their own lockout counters,
independent of the customer magic-link governor.
"""

from datetime import datetime
from typing import Optional, Literal
from bson import ObjectId
from pydantic import BaseModel, Field, field_validator

AdminRole = Literal["admin", "manager", "support"]


class AdminPermissions(BaseModel):
    """Fine-grained permission flags (camelCase names are the public API)."""

    canViewOrders: bool = True
    canEditOrders: bool = False
    canDeleteOrders: bool = False
    canViewCustomers: bool = True
    canEditCustomers: bool = False
    canViewAnalytics: bool = True
    canManageAdmins: bool = False
    canViewAuditLog: bool = True

    @classmethod
    def for_role(cls, role: str) -> "AdminPermissions":
        if role == "admin":
            return cls(
                canEditOrders=True,
                canDeleteOrders=True,
                canEditCustomers=True,
                canManageAdmins=True,
            )
        if role == "manager":
            return cls(canEditOrders=True, canEditCustomers=True)
        return cls()


class AdminUser(BaseModel):
    """Admin document as stored in the `admins` collection."""

    id: Optional[str] = Field(None, alias="_id")
    email: str
    password: str  # bcrypt hash
    first_name: str
    last_name: str
    role: AdminRole = "support"
    permissions: AdminPermissions = Field(default_factory=AdminPermissions)
    is_active: bool = True
    last_login: Optional[datetime] = None
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def _object_id_to_str(cls, value):
        if isinstance(value, ObjectId):
            return str(value)
        return value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_document(self) -> dict:
        return self.model_dump(exclude={"id"})
