"""Pydantic schemas for session statistics.

All duration fields are whole seconds over completed sessions unless noted.
"""

import datetime as dt

from pydantic import Field

from devflow.domain.statistics import TimeRange
from devflow.schemas.common import CamelModel


class AverageDurationResponse(CamelModel):
    average_duration_seconds: int = 0
    total_completed_sessions: int = 0


class SessionStatisticsResponse(AverageDurationResponse):
    total_duration_seconds: int = 0
    longest_session_seconds: int | None = None
    shortest_session_seconds: int | None = None
    active_sessions: int = Field(0, description="Currently active sessions (0 or 1)")
    first_session_start: dt.datetime | None = Field(None, description="Earliest start, completed or not")
    last_session_start: dt.datetime | None = Field(None, description="Latest start, completed or not")
    projects_with_sessions: int = 0


class ProjectStatisticsResponse(SessionStatisticsResponse):
    project_id: int
    project_name: str
    has_active_session: bool = False
    active_session_id: int | None = None


class PeriodStatistics(CamelModel):
    total_sessions: int = 0
    total_seconds: int = 0
    total_hours: float = 0.0


class DailyStatistics(PeriodStatistics):
    date: dt.date


class WeeklyStatistics(PeriodStatistics):
    year: int
    week_number: int
    week_start_date: dt.date
    week_end_date: dt.date


class TimeRangeStatistics(PeriodStatistics):
    range: TimeRange
    start_date: dt.datetime
    end_date: dt.datetime = Field(..., description="Exclusive upper bound")
    average_duration_seconds: int = 0
    project_id: int | None = None
