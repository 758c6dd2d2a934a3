"""Coding session API routes.

POST /api/sessions/start                      - Start a session (one active at a time, globally)
POST /api/sessions/end                        - End the active session
GET  /api/sessions/project/{project_id}       - Session history of a project
GET  /api/sessions/active                     - The active session, any project
GET  /api/sessions/active/{project_id}        - The active session of a project
GET  /api/sessions/average-duration           - Average completed session length
GET  /api/sessions/statistics                 - Global statistics
GET  /api/sessions/statistics/project/{id}    - Project statistics
GET  /api/sessions/statistics/daily           - Per-day totals
GET  /api/sessions/statistics/weekly          - Per-week totals
GET  /api/sessions/statistics/range           - Totals for a calendar range
GET  /api/sessions/{session_id}               - A single session

Fixed paths are registered before /{session_id}.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Path, Query, Response, status

from devflow.core.clock import get_clock
from devflow.db.base import get_session_factory
from devflow.domain.statistics import TimeRange
from devflow.schemas.common import ApiResponse
from devflow.schemas.sessions import (
    ActiveSessionResponse,
    EndSessionRequest,
    SessionResponse,
    StartSessionRequest,
)
from devflow.schemas.statistics import (
    AverageDurationResponse,
    DailyStatistics,
    ProjectStatisticsResponse,
    SessionStatisticsResponse,
    TimeRangeStatistics,
    WeeklyStatistics,
)
from devflow.services.session_service import SessionService
from devflow.services.statistics_service import MAX_DAYS, MAX_WEEKS, StatisticsService

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_session_service() -> SessionService:
    """Override this dependency in tests via app.dependency_overrides."""
    return SessionService(session_factory=get_session_factory(), clock=get_clock())


def get_statistics_service() -> StatisticsService:
    """Override this dependency in tests via app.dependency_overrides."""
    return StatisticsService(session_factory=get_session_factory(), clock=get_clock())


# ---------------------------------------------------------------- lifecycle


@router.post("/start", response_model=ApiResponse[SessionResponse], status_code=status.HTTP_201_CREATED)
async def start_session(
    request: StartSessionRequest,
    response: Response,
    service: SessionService = Depends(get_session_service),
):
    """Start a coding session. Fails with 409 while any session is active."""
    session = await service.start_session(request.project_id)
    response.headers["Location"] = f"/api/sessions/{session.id}"
    return ApiResponse[SessionResponse](
        success=True,
        message="Coding session started successfully.",
        data=session,
    )


@router.post("/end", response_model=ApiResponse[SessionResponse])
async def end_session(
    request: EndSessionRequest,
    service: SessionService = Depends(get_session_service),
):
    """End an active session and record its duration."""
    session = await service.end_session(request.session_id)
    return ApiResponse[SessionResponse](
        success=True,
        message="Coding session ended successfully.",
        data=session,
    )


@router.get("/project/{project_id}", response_model=ApiResponse[list[SessionResponse]])
async def list_project_sessions(
    project_id: int = Path(..., gt=0),
    service: SessionService = Depends(get_session_service),
):
    sessions = await service.list_project_sessions(project_id)
    return ApiResponse[list[SessionResponse]](
        success=True,
        message=f"Retrieved {len(sessions)} session(s) for the project.",
        data=sessions,
    )


@router.get("/active", response_model=ApiResponse[ActiveSessionResponse])
async def get_any_active_session(service: SessionService = Depends(get_session_service)):
    active = await service.get_any_active_session()
    if active is None:
        return ApiResponse[ActiveSessionResponse](success=True, message="No active session found.")
    return ApiResponse[ActiveSessionResponse](success=True, message="Active session found.", data=active)


@router.get("/active/{project_id}", response_model=ApiResponse[ActiveSessionResponse])
async def get_active_session(
    project_id: int = Path(..., gt=0),
    service: SessionService = Depends(get_session_service),
):
    active = await service.get_active_session(project_id)
    if active is None:
        return ApiResponse[ActiveSessionResponse](
            success=True,
            message="No active session found for this project.",
        )
    return ApiResponse[ActiveSessionResponse](success=True, message="Active session found.", data=active)


# ---------------------------------------------------------------- statistics


@router.get("/average-duration", response_model=ApiResponse[AverageDurationResponse])
async def get_average_duration(service: StatisticsService = Depends(get_statistics_service)):
    average = await service.average_duration()
    return ApiResponse[AverageDurationResponse](
        success=True,
        message="Average session duration calculated successfully.",
        data=average,
    )


@router.get("/statistics", response_model=ApiResponse[SessionStatisticsResponse])
async def get_statistics(service: StatisticsService = Depends(get_statistics_service)):
    stats = await service.global_statistics()
    return ApiResponse[SessionStatisticsResponse](
        success=True,
        message="Session statistics retrieved successfully.",
        data=stats,
    )


@router.get("/statistics/project/{project_id}", response_model=ApiResponse[ProjectStatisticsResponse])
async def get_project_statistics(
    project_id: int = Path(..., gt=0),
    service: StatisticsService = Depends(get_statistics_service),
):
    stats = await service.project_statistics(project_id)
    return ApiResponse[ProjectStatisticsResponse](
        success=True,
        message="Project statistics retrieved successfully.",
        data=stats,
    )


@router.get("/statistics/daily", response_model=ApiResponse[list[DailyStatistics]])
async def get_daily_statistics(
    days: int = Query(7, ge=1, le=MAX_DAYS),
    project_id: int | None = Query(None, gt=0, alias="projectId"),
    service: StatisticsService = Depends(get_statistics_service),
):
    breakdown = await service.daily_breakdown(days=days, project_id=project_id)
    return ApiResponse[list[DailyStatistics]](
        success=True,
        message=f"Retrieved daily statistics for {days} day(s).",
        data=breakdown,
    )


@router.get("/statistics/weekly", response_model=ApiResponse[list[WeeklyStatistics]])
async def get_weekly_statistics(
    weeks: int = Query(4, ge=1, le=MAX_WEEKS),
    project_id: int | None = Query(None, gt=0, alias="projectId"),
    service: StatisticsService = Depends(get_statistics_service),
):
    breakdown = await service.weekly_breakdown(weeks=weeks, project_id=project_id)
    return ApiResponse[list[WeeklyStatistics]](
        success=True,
        message=f"Retrieved weekly statistics for {weeks} week(s).",
        data=breakdown,
    )


@router.get("/statistics/range", response_model=ApiResponse[TimeRangeStatistics])
async def get_time_range_statistics(
    range_type: TimeRange = Query(TimeRange.TODAY, alias="range"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    project_id: int | None = Query(None, gt=0, alias="projectId"),
    service: StatisticsService = Depends(get_statistics_service),
):
    stats = await service.time_range_statistics(
        range_type=range_type,
        start_date=start_date,
        end_date=end_date,
        project_id=project_id,
    )
    return ApiResponse[TimeRangeStatistics](
        success=True,
        message="Time range statistics retrieved successfully.",
        data=stats,
    )


# ---------------------------------------------------------------- single session


@router.get("/{session_id}", response_model=ApiResponse[SessionResponse])
async def get_session(
    session_id: int = Path(..., gt=0),
    service: SessionService = Depends(get_session_service),
):
    session = await service.get_session(session_id)
    return ApiResponse[SessionResponse](success=True, message="Session retrieved successfully.", data=session)
