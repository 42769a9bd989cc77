# app/schemas/trusted_ip_schema.py

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any, List


class ManageTrustedIPsRequest(BaseModel):
    """
    Request schema for trusted-IP management.
    `action` stays a plain string so an unknown action answers
    "Invalid action" instead of a schema error.
    """
    action: Optional[str] = Field(None, description="toggle_auto_login | remove_ip | clear_all_ips | regenerate_magic_key")
    ipId: Optional[str] = Field(None, description="Trusted IP record id (remove_ip)")
    autoLoginEnabled: Optional[bool] = Field(None, description="New auto-login flag (toggle_auto_login)")


class TrustedIPItem(BaseModel):
    id: str
    ip: str
    firstSeen: datetime
    lastUsed: datetime
    userAgent: Optional[str] = None
    deviceName: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    isCurrent: bool


class TrustedIPsResponse(BaseModel):
    autoLoginEnabled: bool
    trustedIPs: List[TrustedIPItem]
    currentIP: str
    lastLoginIP: Optional[str] = None
    totalTrustedIPs: int
