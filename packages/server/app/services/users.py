"""
User service: current-user projection and login-time provisioning.
"""

from __future__ import annotations

import re
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.models.user import User
from taskhub_shared.schemas.users import OIDCClaims, UserResponse

log = structlog.get_logger()
settings = get_settings()

USERNAME_MAX_LENGTH = 50
_USERNAME_INVALID = re.compile(r"[^a-z0-9._-]+")


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar_url=user.avatar_url,
        role=user.role,
    )


def get_current_user_view(current_user: Optional[User]) -> Optional[UserResponse]:
    """Public view of the signed-in user; None when nobody is signed in."""
    if current_user is None:
        return None
    return to_user_response(current_user)


# ---------------------------------------------------------------------------
# Username derivation
# ---------------------------------------------------------------------------


def slugify_username(value: str) -> str:
    return _USERNAME_INVALID.sub("", value.strip().lower())[:USERNAME_MAX_LENGTH]


def base_username(email: str, subject: Optional[str]) -> str:
    """Pick a username seed: email local part, then provider subject, then 'user'."""
    local_part = email.split("@", 1)[0] if "@" in email else ""
    for candidate in (local_part, subject or ""):
        slug = slugify_username(candidate)
        if slug:
            return slug
    return "user"


async def ensure_unique_username(session: AsyncSession, base: str) -> str:
    """Return ``base``, or ``base`` suffixed with 1, 2, ... if already taken."""
    candidate = base
    count = 0
    while True:
        result = await session.execute(select(User.id).where(User.username == candidate))
        if result.first() is None:
            return candidate
        count += 1
        suffix = str(count)
        candidate = base[: USERNAME_MAX_LENGTH - len(suffix)] + suffix


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


def _clip(value: Optional[str], length: int) -> Optional[str]:
    return value[:length] if value else value


async def provision_oidc_user(
    session: AsyncSession,
    claims: OIDCClaims,
    *,
    provider: str = "google",
) -> User:
    """Create or refresh the User for a confirmed external identity.

    Idempotent upsert keyed by email: a new email creates a row, a known email
    only refreshes name and avatar.
    """
    if not claims.email:
        raise HTTPException(status_code=400, detail="Email not found from OAuth2 provider")
    email = str(claims.email)

    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is not None:
        user.name = _clip(claims.name, 100)
        user.avatar_url = _clip(claims.picture, 255)
        if claims.sub:
            user.oidc_provider = provider
            user.oidc_subject = claims.sub
        user.touch()
        session.add(user)
        await session.flush()
        log.info("user.login_refreshed", user_id=str(user.id), email=email)
        return user

    username = await ensure_unique_username(session, base_username(email, claims.sub))
    user = User(
        username=username,
        email=email,
        name=_clip(claims.name, 100),
        avatar_url=_clip(claims.picture, 255),
        role=settings.default_user_role or "ROLE_USER",
        oidc_provider=provider if claims.sub else None,
        oidc_subject=claims.sub,
    )
    session.add(user)
    await session.flush()
    log.info("user.registered", user_id=str(user.id), email=email, username=username)
    return user
