#!/usr/bin/env python3
"""Seed a development database with the default user and three starter projects.

Usage:
    uv run python scripts/seed_dev_data.py

Reads TH_DATABASE_URL and TH_DEFAULT_USER_* (or their defaults). Does nothing
when any project already exists, so it is safe to run on every start.
"""

import asyncio

import structlog
from sqlalchemy import func
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session_context, init_db
from app.core.logging import configure_logging
from app.models.project import Project
from app.models.user import User
from app.services.users import base_username, ensure_unique_username

log = structlog.get_logger()
settings = get_settings()

DEFAULT_PROJECTS = [
    # (name, description, color, icon_name, is_favorite)
    ("Kế Hoạch Cá Nhân", "Các công việc và mục tiêu cá nhân", "bg-indigo-500", "User", True),
    ("Dự Án Công Ty ABC", "Phát triển module XYZ", "bg-sky-500", "Briefcase", False),
    ("Học Tập Mới", "Nghiên cứu công nghệ AI và ML", "bg-green-500", "BookOpen", True),
]


async def seed():
    configure_logging(settings.log_level, "text")

    if not settings.default_user_email:
        log.warning("seed.skipped", reason="TH_DEFAULT_USER_EMAIL is not set")
        return

    await init_db()

    async with get_session_context() as session:
        project_count = (await session.execute(select(func.count()).select_from(Project))).scalar_one()
        if project_count:
            log.info("seed.skipped", reason="projects already exist", count=project_count)
            return

        result = await session.execute(select(User).where(User.email == settings.default_user_email))
        user = result.scalar_one_or_none()
        if user is None:
            username = await ensure_unique_username(
                session, base_username(settings.default_user_email, None)
            )
            user = User(
                username=username,
                email=settings.default_user_email,
                name=settings.default_user_name,
                avatar_url=settings.default_user_avatar_url or None,
                role=settings.default_user_role,
            )
            session.add(user)
            await session.flush()
            log.info("seed.user_created", email=user.email, username=username)

        for name, description, color, icon_name, is_favorite in DEFAULT_PROJECTS:
            session.add(
                Project(
                    name=name,
                    description=description,
                    color=color,
                    icon_name=icon_name,
                    is_favorite=is_favorite,
                    owner_id=user.id,
                )
            )

    log.info("seed.done", projects=len(DEFAULT_PROJECTS), owner=settings.default_user_email)


if __name__ == "__main__":
    asyncio.run(seed())
