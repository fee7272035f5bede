"""User schemas."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from .common import CamelModel


class UserResponse(CamelModel):
    """Public view of the signed-in user (GET /api/users/me)."""
    id: UUID
    name: Optional[str] = None
    email: str
    avatar_url: Optional[str] = None
    role: Optional[str] = None


class OIDCClaims(BaseModel):
    """Identity claims returned by the provider's userinfo endpoint."""
    sub: Optional[str] = None
    email: Optional[EmailStr] = None
    email_verified: Optional[bool] = None
    name: Optional[str] = None
    picture: Optional[str] = None
