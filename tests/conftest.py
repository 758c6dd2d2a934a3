"""Shared test fixtures for all test groups."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from devflow.core.clock import Clock
from devflow.db.base import configure_sqlite, create_session_factory, create_tables
from devflow.services.project_service import ProjectService
from devflow.services.session_service import SessionService
from devflow.services.statistics_service import StatisticsService


class FakeClock(Clock):
    """Clock frozen at ``current`` until advanced by the test."""

    def __init__(self, current: datetime | None = None, utc_offset_hours: float = 8.0):
        super().__init__(utc_offset_hours)
        # Wednesday, mid-morning in the configured offset
        self.current = current or datetime(2026, 10, 14, 9, 30, tzinfo=self.tz)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> datetime:
        self.current = value if value.tzinfo else value.replace(tzinfo=self.tz)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """File-backed SQLite engine with all tables created.

    A file (not :memory:) gives every AsyncSession its own connection, so
    concurrent transactions behave like they do against a real server.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'devflow-test.db'}", echo=False)
    configure_sqlite(engine)
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def project_service(session_factory, clock):
    return ProjectService(session_factory=session_factory, clock=clock)


@pytest.fixture
def session_service(session_factory, clock):
    return SessionService(session_factory=session_factory, clock=clock)


@pytest.fixture
def statistics_service(session_factory, clock):
    return StatisticsService(session_factory=session_factory, clock=clock)


@pytest.fixture
def record_session(session_service, clock):
    """Start a session at ``start`` on a project and end it ``seconds`` later."""

    async def _record(project_id: int, start: datetime, seconds: int):
        clock.set(start)
        started = await session_service.start_session(project_id)
        clock.advance(seconds=seconds)
        return await session_service.end_session(started.id)

    return _record
