"""StatisticsService: aggregate analytics over recorded sessions.

Durations come from completed sessions only (end_time set). Start-time
extremes and the per-project count consider every session, running or not.
Aggregates are pushed to SQL; calendar bucketing happens in
devflow.domain.statistics so it follows the configured timezone.
"""

from datetime import datetime, timedelta

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devflow.core.clock import Clock
from devflow.core.exceptions import InvalidArgumentError, NotFoundError
from devflow.db.models.coding_session import CodingSession
from devflow.db.models.project import Project
from devflow.domain.statistics import (
    TimeRange,
    average_seconds,
    daily_totals,
    resolve_time_range,
    seconds_to_hours,
    start_of_day,
    start_of_week,
    weekly_totals,
)
from devflow.schemas.statistics import (
    AverageDurationResponse,
    DailyStatistics,
    ProjectStatisticsResponse,
    SessionStatisticsResponse,
    TimeRangeStatistics,
    WeeklyStatistics,
)

logger = structlog.get_logger(__name__)

MAX_DAYS = 366
MAX_WEEKS = 104


class StatisticsService:
    """Read-only analytics; never writes to the store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock):
        self.session_factory = session_factory
        self.clock = clock

    async def average_duration(self) -> AverageDurationResponse:
        async with self.session_factory() as session:
            count, total = (
                await session.execute(
                    select(
                        func.count(CodingSession.id),
                        func.coalesce(func.sum(CodingSession.duration_seconds), 0),
                    ).where(CodingSession.end_time.is_not(None))
                )
            ).one()

        logger.info("average_duration_computed", completed=count)
        return AverageDurationResponse(
            average_duration_seconds=average_seconds(total, count),
            total_completed_sessions=count,
        )

    async def global_statistics(self) -> SessionStatisticsResponse:
        async with self.session_factory() as session:
            fields = await self._summarize(session)
        logger.info("global_statistics_computed", completed=fields["total_completed_sessions"])
        return SessionStatisticsResponse(**fields)

    async def project_statistics(self, project_id: int) -> ProjectStatisticsResponse:
        """Same figures as global_statistics, scoped to one project."""
        async with self.session_factory() as session:
            project = await self._require_project(session, project_id)
            fields = await self._summarize(session, project_id)
            active_id = (
                await session.execute(
                    select(CodingSession.id)
                    .where(CodingSession.project_id == project_id, CodingSession.is_active.is_(True))
                    .limit(1)
                )
            ).scalar_one_or_none()

        logger.info("project_statistics_computed", project_id=project_id)
        return ProjectStatisticsResponse(
            project_id=project.id,
            project_name=project.name,
            has_active_session=active_id is not None,
            active_session_id=active_id,
            **fields,
        )

    async def daily_breakdown(self, days: int = 7, project_id: int | None = None) -> list[DailyStatistics]:
        """Per-day totals for the last ``days`` days, today included."""
        if not 1 <= days <= MAX_DAYS:
            raise InvalidArgumentError(f"days must be between 1 and {MAX_DAYS}.")

        today = self.clock.now().date()
        first_day = today - timedelta(days=days - 1)
        samples = await self._completed_samples(
            start_of_day(first_day, self.clock.tz),
            start_of_day(today + timedelta(days=1), self.clock.tz),
            project_id,
        )

        return [
            DailyStatistics(
                date=bucket.start,
                total_sessions=bucket.total_sessions,
                total_seconds=bucket.total_seconds,
                total_hours=seconds_to_hours(bucket.total_seconds),
            )
            for bucket in daily_totals(samples, first_day, days)
        ]

    async def weekly_breakdown(self, weeks: int = 4, project_id: int | None = None) -> list[WeeklyStatistics]:
        """Per ISO week totals for the last ``weeks`` weeks, this week included."""
        if not 1 <= weeks <= MAX_WEEKS:
            raise InvalidArgumentError(f"weeks must be between 1 and {MAX_WEEKS}.")

        this_week = start_of_week(self.clock.now().date())
        first_week = this_week - timedelta(weeks=weeks - 1)
        samples = await self._completed_samples(
            start_of_day(first_week, self.clock.tz),
            start_of_day(this_week + timedelta(weeks=1), self.clock.tz),
            project_id,
        )

        results = []
        for bucket in weekly_totals(samples, first_week, weeks):
            iso_year, iso_week, _ = bucket.start.isocalendar()
            results.append(
                WeeklyStatistics(
                    year=iso_year,
                    week_number=iso_week,
                    week_start_date=bucket.start,
                    week_end_date=bucket.end,
                    total_sessions=bucket.total_sessions,
                    total_seconds=bucket.total_seconds,
                    total_hours=seconds_to_hours(bucket.total_seconds),
                )
            )
        return results

    async def time_range_statistics(
        self,
        range_type: TimeRange = TimeRange.TODAY,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        project_id: int | None = None,
    ) -> TimeRangeStatistics:
        """Totals for sessions started inside a calendar range."""
        try:
            start, end = resolve_time_range(
                range_type,
                self.clock.now(),
                self.clock.localize(start_date),
                self.clock.localize(end_date),
            )
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        samples = await self._completed_samples(start, end, project_id)
        count = len(samples)
        total = sum(duration for _, duration in samples)

        return TimeRangeStatistics(
            range=range_type,
            start_date=start,
            end_date=end,
            project_id=project_id,
            total_sessions=count,
            total_seconds=total,
            total_hours=seconds_to_hours(total),
            average_duration_seconds=average_seconds(total, count),
        )

    # ------------------------------------------------------------------ helpers

    async def _require_project(self, session: AsyncSession, project_id: int) -> Project:
        if project_id <= 0:
            raise InvalidArgumentError("Invalid project ID. ProjectId must be a positive integer.")
        project = await session.get(Project, project_id)
        if project is None:
            logger.warning("statistics_project_not_found", project_id=project_id)
            raise NotFoundError(f"Project with ID {project_id} not found.")
        return project

    async def _summarize(self, session: AsyncSession, project_id: int | None = None) -> dict:
        scope = [CodingSession.project_id == project_id] if project_id is not None else []

        count, total, longest, shortest = (
            await session.execute(
                select(
                    func.count(CodingSession.id),
                    func.coalesce(func.sum(CodingSession.duration_seconds), 0),
                    func.max(CodingSession.duration_seconds),
                    func.min(CodingSession.duration_seconds),
                ).where(CodingSession.end_time.is_not(None), *scope)
            )
        ).one()

        active = (
            await session.execute(
                select(func.count(CodingSession.id)).where(CodingSession.is_active.is_(True), *scope)
            )
        ).scalar_one()

        first_start, last_start, projects = (
            await session.execute(
                select(
                    func.min(CodingSession.start_time),
                    func.max(CodingSession.start_time),
                    func.count(distinct(CodingSession.project_id)),
                ).where(*scope)
            )
        ).one()

        return {
            "average_duration_seconds": average_seconds(total, count),
            "total_completed_sessions": count,
            "total_duration_seconds": total,
            "longest_session_seconds": longest,
            "shortest_session_seconds": shortest,
            "active_sessions": active,
            "first_session_start": self.clock.localize(first_start),
            "last_session_start": self.clock.localize(last_start),
            "projects_with_sessions": projects,
        }

    async def _completed_samples(
        self,
        start: datetime,
        end: datetime,
        project_id: int | None,
    ) -> list[tuple[datetime, int]]:
        """(start_time, duration_seconds) of completed sessions started in [start, end)."""
        async with self.session_factory() as session:
            query = select(CodingSession.start_time, CodingSession.duration_seconds).where(
                CodingSession.end_time.is_not(None),
                CodingSession.start_time >= start,
                CodingSession.start_time < end,
            )
            if project_id is not None:
                await self._require_project(session, project_id)
                query = query.where(CodingSession.project_id == project_id)
            rows = (await session.execute(query)).all()

        return [(self.clock.localize(started), duration or 0) for started, duration in rows]
