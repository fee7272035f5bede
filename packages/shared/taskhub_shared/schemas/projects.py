from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from .common import CamelModel


class ProjectRequest(CamelModel):
    """Body of POST /api/projects and PUT /api/projects/{id}.

    Update is a full overwrite, so create and update share one schema.
    """

    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, max_length=30)
    icon_name: Optional[str] = Field(default=None, max_length=50)
    is_favorite: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Project name must not be blank")
        return value


class ProjectRead(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon_name: Optional[str] = None
    is_favorite: bool = False
    task_count: int = 0
    owner_id: UUID
    owner_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
