# app/schemas/auth_schema.py

from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    """
    Request schema for the customer login entry point.
    `email` is validated by the auth service so a missing value maps to
    "Email required" rather than a generic validation error.
    """
    email: Optional[str] = Field(None, description="Customer email address")


class SendMagicLinkRequest(BaseModel):
    email: Optional[str] = Field(None, description="Customer email address")


class VerifyMagicLinkRequest(BaseModel):
    magicKey: Optional[str] = Field(None, description="Key taken from the emailed link")


class UserProfile(BaseModel):
    id: str
    email: str
    createdAt: str
    updatedAt: str


class AutoLoginResponse(BaseModel):
    autoLoggedIn: bool = True
    message: str
    user: UserProfile
    matchType: str


class MagicLinkSentResponse(BaseModel):
    magicLinkSent: bool = True
    message: str
    email: str


class VerifyMagicLinkResponse(BaseModel):
    message: str
    user: UserProfile
    newTrustedIP: Optional[str] = None
    autoLoginEnabled: bool


class SessionCheckResponse(BaseModel):
    authenticated: bool = True
    user: UserProfile
