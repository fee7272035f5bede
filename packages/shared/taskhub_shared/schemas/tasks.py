"""Task request/response schemas shared by the server and frontend codegen."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from .common import CamelModel, TaskStatus


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TaskRequest(CamelModel):
    """Body of PUT /api/tasks/{taskId}: every field is overwritten.

    ``project_id`` is optional at the schema level so that a missing project
    is reported with a specific 400 message by the service layer.
    """

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[date] = None
    project_id: Optional[UUID] = None
    assignee_id: Optional[UUID] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task title must not be blank")
        return value


class TaskCreate(TaskRequest):
    """Body of POST /api/tasks. New tasks cannot be due in the past."""

    @field_validator("due_date")
    @classmethod
    def due_date_not_past(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value < date.today():
            raise ValueError("Due date must be today or in the future")
        return value


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TaskRead(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    project_id: Optional[UUID] = None
    project_name: Optional[str] = None
    assignee_id: Optional[UUID] = None
    assignee_name: Optional[str] = None
