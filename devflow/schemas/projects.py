"""Pydantic schemas for project registry requests and responses."""

from datetime import datetime

from pydantic import Field, field_validator

from devflow.db.models.project import DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH
from devflow.schemas.common import CamelModel


class ProjectWrite(CamelModel):
    """Body of create and update requests. Strings are trimmed."""

    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name is required and cannot be empty.")
        return value

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None


class ProjectCreate(ProjectWrite):
    pass


class ProjectUpdate(ProjectWrite):
    pass


class ProjectResponse(CamelModel):
    """Project with rollups computed at read time."""

    id: int
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    total_sessions: int = Field(0, description="Number of sessions recorded for the project")
    total_hours: int = Field(0, description="Completed session time, rounded to whole hours")
