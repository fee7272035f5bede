"""
Authentication for TaskHub.

Supports:
- Session JWTs issued after a successful Google OIDC login, carried in an
  HttpOnly cookie
- Redis revocation list so logout invalidates a token before it expires
- Resolution of the session's email claim to a persisted User

The resolved user is handed to services explicitly; nothing downstream reads
authentication state from the request.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.redis import get_redis
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()


class UserLookupError(LookupError):
    """A valid session names an email with no matching user row."""

    def __init__(self, email: str):
        super().__init__(f"User not found with email: {email}")
        self.email = email


# ---------------------------------------------------------------------------
# Session JWT
# ---------------------------------------------------------------------------

def create_session_token(
    user: User,
    *,
    provider: str = "google",
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT for a user. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.session_expire_minutes))
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "provider": provider,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_session_token(token: str) -> dict:
    """Decode and verify a session JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def session_ttl_seconds(payload: dict) -> int:
    """Seconds until the token in ``payload`` expires (at least 1)."""
    exp = payload.get("exp")
    if exp is None:
        return settings.session_expire_minutes * 60
    remaining = int(exp - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)


# ---------------------------------------------------------------------------
# Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_session(jti: str, ttl_seconds: int) -> None:
    """Add a session JWT ID to the revocation list."""
    redis = await get_redis()
    await redis.setex(f"session:revoked:{jti}", ttl_seconds, "1")


async def is_session_revoked(jti: str) -> bool:
    """Check if a session JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"session:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# OAuth2 state
# ---------------------------------------------------------------------------

def generate_state() -> str:
    """Random value binding an authorization request to its callback."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Current-user resolution
# ---------------------------------------------------------------------------

async def get_session_claims(request: Request) -> Optional[dict]:
    """Return the verified claims of the request's session, or None."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    try:
        payload = decode_session_token(token)
    except jwt.PyJWTError:
        log.debug("auth.invalid_session")
        return None

    jti = payload.get("jti")
    if jti and await is_session_revoked(jti):
        log.debug("auth.revoked_session", jti=jti)
        return None

    return payload


async def resolve_user(session: AsyncSession, claims: Optional[dict]) -> Optional[User]:
    """Map identity claims to the persisted User.

    Returns None when there is no identity or it carries no email claim.
    Raises UserLookupError when the email claim has no matching user, since
    users are provisioned at login and a miss means the directory is broken.
    """
    if not claims:
        return None
    email = claims.get("email")
    if not email:
        return None

    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        log.error("auth.user_missing", email=email)
        raise UserLookupError(email)
    return user


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """FastAPI dependency: the signed-in User, or None for anonymous requests."""
    claims = await get_session_claims(request)
    return await resolve_user(session, claims)


def require_authenticated(user: Optional[User]) -> User:
    """Fail with 401 unless a user is signed in."""
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user
