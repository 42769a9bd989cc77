from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class SessionModel(BaseModel):
    """
    Server-side login session. Only the SHA-256 of the cookie value is stored.
    """
    account_id: str
    token_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    login_method: str = "magic_link"  # magic_link | auto_login
    revoked: bool = False
    revoked_at: Optional[datetime] = None
