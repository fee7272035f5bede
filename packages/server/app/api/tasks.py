"""
Task endpoints.

POST   /api/tasks                       Create a task in an owned project
GET    /api/tasks/assigned              Tasks assigned to the current user
GET    /api/tasks/{taskId}              Get a task (project owner or assignee)
PUT    /api/tasks/{taskId}              Replace a task (project owner or assignee)
DELETE /api/tasks/{taskId}              Delete a task (project owner only)
GET    /api/projects/{projectId}/tasks  Tasks of an owned project
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.user import User
from app.services import tasks as task_service
from taskhub_shared.schemas.tasks import TaskCreate, TaskRead, TaskRequest

router = APIRouter()


@router.post("/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.create_task(session, current_user, body)
    await session.commit()
    return task


@router.get("/projects/{project_id}/tasks", response_model=List[TaskRead])
async def list_project_tasks(
    project_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await task_service.list_project_tasks(session, current_user, project_id)


# Declared before /tasks/{task_id} so "assigned" is not parsed as an id.
@router.get("/tasks/assigned", response_model=List[TaskRead])
async def list_assigned_tasks(
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await task_service.list_assigned_tasks(session, current_user)


@router.get("/tasks/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await task_service.get_task(session, current_user, task_id)


@router.put("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskRequest,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.update_task(session, current_user, task_id, body)
    await session.commit()
    return task


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await task_service.delete_task(session, current_user, task_id)
    await session.commit()
    return Response(status_code=204)
