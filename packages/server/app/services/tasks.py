"""
Task service layer: CRUD with ownership and assignment rules.

Access model:
- The owner of a task's project may read, update and delete it.
- The task's assignee may read and update it, but not delete it.
- Anyone else gets 404, the same answer as for a task that does not exist.
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import require_authenticated
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from app.services.projects import get_owned_project_or_404
from taskhub_shared.schemas.tasks import TaskCreate, TaskRead, TaskRequest

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


async def get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"Assignee not found: {user_id}")
    return user


def _require_project_id(body: TaskRequest) -> uuid.UUID:
    if body.project_id is None:
        raise HTTPException(
            status_code=400, detail="A task must belong to a project (projectId is required)"
        )
    return body.project_id


async def _project_owner_id(session: AsyncSession, task: Task) -> Optional[uuid.UUID]:
    result = await session.execute(
        select(Project.owner_id).where(Project.id == task.project_id)
    )
    return result.scalar_one_or_none()


async def _access(session: AsyncSession, task: Task, user: User) -> tuple[bool, bool]:
    """Return (owns_project, is_assignee) for ``user`` on ``task``."""
    owns_project = await _project_owner_id(session, task) == user.id
    is_assignee = task.assignee_id is not None and task.assignee_id == user.id
    return owns_project, is_assignee


async def _get_visible_task(session: AsyncSession, task_id: uuid.UUID, user: User) -> Task:
    task = await get_task_or_404(session, task_id)
    owns_project, is_assignee = await _access(session, task, user)
    if not (owns_project or is_assignee):
        raise HTTPException(status_code=404, detail="Task not found")
    return task


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    """Attach project and assignee names to tasks for API responses."""
    if not tasks:
        return []

    project_ids = {t.project_id for t in tasks}
    assignee_ids = {t.assignee_id for t in tasks if t.assignee_id is not None}

    result = await session.execute(
        select(Project.id, Project.name).where(Project.id.in_(project_ids))
    )
    project_names = {row.id: row.name for row in result}

    assignee_names: dict[uuid.UUID, Optional[str]] = {}
    if assignee_ids:
        result = await session.execute(
            select(User.id, User.name).where(User.id.in_(assignee_ids))
        )
        assignee_names = {row.id: row.name for row in result}

    return [
        TaskRead(
            id=t.id,
            title=t.title,
            description=t.description,
            status=t.status,
            due_date=t.due_date,
            created_at=t.created_at,
            updated_at=t.updated_at,
            project_id=t.project_id,
            project_name=project_names.get(t.project_id),
            assignee_id=t.assignee_id,
            assignee_name=assignee_names.get(t.assignee_id) if t.assignee_id else None,
        )
        for t in tasks
    ]


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    return (await enrich_tasks(session, [task]))[0]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_project_tasks(
    session: AsyncSession, current_user: Optional[User], project_id: uuid.UUID
) -> list[TaskRead]:
    user = require_authenticated(current_user)
    await get_owned_project_or_404(session, project_id, user.id)
    result = await session.execute(select(Task).where(Task.project_id == project_id))
    return await enrich_tasks(session, list(result.scalars().all()))


async def list_assigned_tasks(
    session: AsyncSession, current_user: Optional[User]
) -> list[TaskRead]:
    """Tasks assigned to the caller, across every project."""
    user = require_authenticated(current_user)
    result = await session.execute(select(Task).where(Task.assignee_id == user.id))
    return await enrich_tasks(session, list(result.scalars().all()))


async def get_task(
    session: AsyncSession, current_user: Optional[User], task_id: uuid.UUID
) -> TaskRead:
    user = require_authenticated(current_user)
    task = await _get_visible_task(session, task_id, user)
    return await enrich_task(session, task)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession, current_user: Optional[User], body: TaskCreate
) -> TaskRead:
    """Create a task in a project the caller owns.

    Without an explicit assignee the task is assigned to its creator.
    """
    user = require_authenticated(current_user)
    project_id = _require_project_id(body)
    project = await get_owned_project_or_404(session, project_id, user.id)

    if body.assignee_id is not None:
        assignee = await get_user_or_404(session, body.assignee_id)
    else:
        assignee = user

    task = Task(
        title=body.title,
        description=body.description,
        status=body.status.value,
        due_date=body.due_date,
        project_id=project.id,
        assignee_id=assignee.id,
    )
    session.add(task)
    await session.flush()

    log.info(
        "task.created",
        task_id=str(task.id),
        project_id=str(project.id),
        assignee_id=str(assignee.id),
    )
    return await enrich_task(session, task)


async def update_task(
    session: AsyncSession,
    current_user: Optional[User],
    task_id: uuid.UUID,
    body: TaskRequest,
) -> TaskRead:
    """Overwrite a task. Allowed for the project owner and the assignee.

    Every reference is validated before any field is written, so a rejected
    update leaves the task untouched. Omitting assigneeId unassigns the task.
    """
    user = require_authenticated(current_user)
    task = await _get_visible_task(session, task_id, user)
    project_id = _require_project_id(body)

    if project_id != task.project_id:
        await get_owned_project_or_404(session, project_id, user.id)

    if body.assignee_id is not None and body.assignee_id != task.assignee_id:
        await get_user_or_404(session, body.assignee_id)

    task.title = body.title
    task.description = body.description
    task.status = body.status.value
    task.due_date = body.due_date
    task.project_id = project_id
    task.assignee_id = body.assignee_id
    task.touch()
    session.add(task)
    await session.flush()

    log.info("task.updated", task_id=str(task.id), actor_id=str(user.id))
    return await enrich_task(session, task)


async def delete_task(
    session: AsyncSession, current_user: Optional[User], task_id: uuid.UUID
) -> None:
    """Delete a task. Only the owner of the task's project may do this."""
    user = require_authenticated(current_user)
    task = await _get_visible_task(session, task_id, user)
    owns_project, _ = await _access(session, task, user)
    if not owns_project:
        log.warning("task.delete_forbidden", task_id=str(task_id), actor_id=str(user.id))
        raise HTTPException(
            status_code=403,
            detail="Only the project owner can delete this task",
        )

    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task_id), actor_id=str(user.id))
