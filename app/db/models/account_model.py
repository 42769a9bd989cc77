# app/db/models/account_model.py

from datetime import datetime
from typing import Optional, Dict, Any, List
from bson import ObjectId
from pydantic import BaseModel, Field, field_validator


def _new_record_id() -> str:
    return str(ObjectId())


class TrustedIPRecord(BaseModel):
    """
    An IP address that has completed a successful login for an account.
    Embedded in the account document; one record per distinct IP.
    """
    id: str = Field(default_factory=_new_record_id)
    ip: str
    first_seen: datetime = Field(default_factory=datetime.utcnow)
    last_used: datetime = Field(default_factory=datetime.utcnow)
    user_agent: Optional[str] = None
    device_name: Optional[str] = None
    location: Optional[Dict[str, Any]] = None


class Account(BaseModel):
    """
    Customer account, one per (lower-cased) email address.

    Holds the trusted-IP list, the outstanding magic key and the
    login-attempt counters of the magic-link flow. `version` backs the
    conditional writes in AccountService.save().
    """
    id: Optional[str] = Field(None, alias="_id")
    email: str

    magic_key: Optional[str] = None
    magic_key_expires_at: Optional[datetime] = None

    trusted_ips: List[TrustedIPRecord] = Field(default_factory=list)
    last_login_ip: Optional[str] = None
    auto_login_enabled: bool = True

    login_attempts: int = 0
    last_login_attempt: Optional[datetime] = None
    account_locked: bool = False
    lock_until: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 0

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

    @classmethod
    def from_document(cls, doc: Optional[dict]) -> Optional["Account"]:
        if doc is None:
            return None
        return cls.model_validate(doc)

    def to_document(self) -> dict:
        """Mongo document without `_id`."""
        return self.model_dump(exclude={"id"})

    def public_profile(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
