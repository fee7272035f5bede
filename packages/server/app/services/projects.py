"""
Project service layer: CRUD scoped to the project owner.

A project is only ever visible to its owner. Any id that does not resolve to
a project owned by the caller is reported as 404, whether or not it exists.
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import require_authenticated
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from taskhub_shared.schemas.projects import ProjectRead, ProjectRequest

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_owned_project_or_404(
    session: AsyncSession, project_id: uuid.UUID, owner_id: uuid.UUID
) -> Project:
    result = await session.execute(
        select(Project).where(Project.id == project_id, Project.owner_id == owner_id)
    )
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def _task_counts(
    session: AsyncSession, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not project_ids:
        return {}
    stmt = (
        select(Task.project_id, func.count().label("cnt"))
        .where(Task.project_id.in_(project_ids))
        .group_by(Task.project_id)
    )
    result = await session.execute(stmt)
    return {row.project_id: row.cnt for row in result}


async def enrich_projects(
    session: AsyncSession, projects: Sequence[Project], owner: User
) -> list[ProjectRead]:
    """Build response views with the live task count of each project."""
    counts = await _task_counts(session, [p.id for p in projects])
    return [
        ProjectRead(
            id=p.id,
            name=p.name,
            description=p.description,
            color=p.color,
            icon_name=p.icon_name,
            is_favorite=p.is_favorite,
            task_count=counts.get(p.id, 0),
            owner_id=p.owner_id,
            owner_name=owner.name,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
        for p in projects
    ]


async def enrich_project(session: AsyncSession, project: Project, owner: User) -> ProjectRead:
    return (await enrich_projects(session, [project], owner))[0]


def _apply(project: Project, body: ProjectRequest) -> None:
    project.name = body.name
    project.description = body.description
    project.color = body.color
    project.icon_name = body.icon_name
    project.is_favorite = body.is_favorite


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def list_projects(
    session: AsyncSession, current_user: Optional[User]
) -> list[ProjectRead]:
    user = require_authenticated(current_user)
    result = await session.execute(select(Project).where(Project.owner_id == user.id))
    return await enrich_projects(session, list(result.scalars().all()), user)


async def get_project(
    session: AsyncSession, current_user: Optional[User], project_id: uuid.UUID
) -> ProjectRead:
    user = require_authenticated(current_user)
    project = await get_owned_project_or_404(session, project_id, user.id)
    return await enrich_project(session, project, user)


async def create_project(
    session: AsyncSession, current_user: Optional[User], body: ProjectRequest
) -> ProjectRead:
    user = require_authenticated(current_user)
    project = Project(owner_id=user.id, name=body.name)
    _apply(project, body)
    session.add(project)
    await session.flush()

    log.info("project.created", project_id=str(project.id), owner_id=str(user.id))
    return await enrich_project(session, project, user)


async def update_project(
    session: AsyncSession,
    current_user: Optional[User],
    project_id: uuid.UUID,
    body: ProjectRequest,
) -> ProjectRead:
    """Overwrite every mutable field. The owner never changes."""
    user = require_authenticated(current_user)
    project = await get_owned_project_or_404(session, project_id, user.id)
    _apply(project, body)
    project.touch()
    session.add(project)
    await session.flush()

    log.info("project.updated", project_id=str(project.id))
    return await enrich_project(session, project, user)


async def delete_project(
    session: AsyncSession, current_user: Optional[User], project_id: uuid.UUID
) -> None:
    """Delete a project together with all of its tasks."""
    user = require_authenticated(current_user)
    project = await get_owned_project_or_404(session, project_id, user.id)

    result = await session.execute(delete(Task).where(Task.project_id == project.id))
    await session.delete(project)
    await session.flush()

    log.info(
        "project.deleted",
        project_id=str(project_id),
        tasks_deleted=result.rowcount,
    )
