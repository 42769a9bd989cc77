# app/services/admin_service.py

import logging
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.models.admin_user_model import AdminPermissions, AdminUser

logger = logging.getLogger(__name__)


class AdminService:
    """
    Persistence for back-office admins (`admins` collection).
    """

    @staticmethod
    async def get_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[AdminUser]:
        doc = await db.admins.find_one({"email": email.strip().lower()})
        return AdminUser.model_validate(doc) if doc else None

    @staticmethod
    async def get_by_id(db: AsyncIOMotorDatabase, admin_id: str) -> Optional[AdminUser]:
        try:
            oid = ObjectId(admin_id)
        except (InvalidId, TypeError):
            return None
        doc = await db.admins.find_one({"_id": oid})
        return AdminUser.model_validate(doc) if doc else None

    @staticmethod
    async def save_login_state(db: AsyncIOMotorDatabase, admin: AdminUser) -> None:
        """Persist the lockout counters and last login of `admin`."""
        await db.admins.update_one(
            {"_id": ObjectId(admin.id)},
            {
                "$set": {
                    "login_attempts": admin.login_attempts,
                    "lock_until": admin.lock_until,
                    "last_login": admin.last_login,
                }
            },
        )

    @staticmethod
    async def create_admin(
        db: AsyncIOMotorDatabase,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: str = "support",
    ) -> AdminUser:
        admin = AdminUser(
            email=email,
            password=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            permissions=AdminPermissions.for_role(role),
        )
        result = await db.admins.insert_one(admin.to_document())
        admin.id = str(result.inserted_id)
        logger.info(f"Created {role} admin {admin.email}")
        return admin
