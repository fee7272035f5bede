"""
Shared fixtures for server tests.

The app runs against an in-memory SQLite database (aiosqlite) and a mocked
session revocation list, so no PostgreSQL or Redis is needed.
"""

from __future__ import annotations

import os

os.environ.setdefault("TH_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TH_SECRET_KEY", "test-secret-key-with-enough-bytes-for-hs256")
os.environ.setdefault("TH_FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("TH_LOG_FORMAT", "text")

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_session_token
from app.core.config import get_settings
from app.core.database import get_session
from app.main import app as fastapi_app
from app.models.user import User

settings = get_settings()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def revocations():
    """In-memory stand-in for the Redis revocation list."""
    revoked: set[str] = set()

    async def _revoke(jti: str, ttl_seconds: int) -> None:
        revoked.add(jti)

    async def _is_revoked(jti: str) -> bool:
        return jti in revoked

    with patch("app.core.auth.is_session_revoked", AsyncMock(side_effect=_is_revoked)), patch(
        "app.api.auth.revoke_session", AsyncMock(side_effect=_revoke)
    ) as revoke_mock:
        yield revoke_mock


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """Persist a user and return it."""

    async def _make(email: str, name: str | None = None) -> User:
        local = email.split("@", 1)[0]
        async with session_factory() as session:
            user = User(
                username=local,
                email=email,
                name=name or local.title(),
                role="ROLE_USER",
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def auth_headers():
    """Build a Cookie header carrying a fresh session for a user."""

    def _headers(user: User) -> dict[str, str]:
        token, _ = create_session_token(user)
        return {"Cookie": f"{settings.session_cookie_name}={token}"}

    return _headers
