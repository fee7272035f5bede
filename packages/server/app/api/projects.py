"""
Project endpoints: CRUD for the signed-in user's own projects.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.user import User
from app.services import projects as project_service
from taskhub_shared.schemas.projects import ProjectRead, ProjectRequest

router = APIRouter()


@router.get("", response_model=List[ProjectRead])
async def list_projects(
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List the projects owned by the current user."""
    return await project_service.list_projects(session, current_user)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectRequest,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.create_project(session, current_user, body)
    await session.commit()
    return project


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await project_service.get_project(session, current_user, project_id)


@router.put("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectRequest,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Replace all editable fields of a project."""
    project = await project_service.update_project(session, current_user, project_id, body)
    await session.commit()
    return project


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: uuid.UUID,
    current_user: Optional[User] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Delete a project and every task in it."""
    await project_service.delete_project(session, current_user, project_id)
    await session.commit()
    return Response(status_code=204)
