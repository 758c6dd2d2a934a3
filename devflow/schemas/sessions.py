"""Pydantic schemas for the session lifecycle API."""

from datetime import datetime

from pydantic import Field

from devflow.schemas.common import CamelModel


class StartSessionRequest(CamelModel):
    project_id: int = Field(..., gt=0, description="Project to start a session on")


class EndSessionRequest(CamelModel):
    session_id: int = Field(..., gt=0, description="Active session to end")


class SessionResponse(CamelModel):
    id: int
    project_id: int
    project_name: str
    start_time: datetime
    end_time: datetime | None = None
    duration_seconds: int | None = None
    is_active: bool
    is_auto_stopped: bool = False
    created_at: datetime


class ActiveSessionResponse(CamelModel):
    """The running session with time elapsed since it started."""

    id: int
    project_id: int
    project_name: str
    start_time: datetime
    elapsed_seconds: int = Field(..., ge=0)
