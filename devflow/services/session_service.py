"""SessionService: coding session lifecycle.

State machine per session: (absent) -> Active -> Ended (terminal).
Across all projects at most one session is Active at any time.

Start checks for any active session before checking that the project exists,
so a running session elsewhere is reported as a conflict even for an unknown
project id. The check is backed by the partial unique index on
sessions.is_active: a start that loses a race against a concurrent start
fails at commit and is reported with the same conflict a sequential caller
would get.

End is a conditional update on is_active, so a session is ended exactly once
even when two end calls overlap.
"""

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devflow.core.clock import Clock
from devflow.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError, StoreError
from devflow.db.models.coding_session import CodingSession
from devflow.db.models.project import Project
from devflow.domain.statistics import elapsed_seconds
from devflow.schemas.sessions import ActiveSessionResponse, SessionResponse

logger = structlog.get_logger(__name__)


class ActiveSessionConflictError(ConflictError):
    """Raised when a start is refused because a session is already running."""

    def __init__(self, message: str, active_session_id: int, active_project_id: int):
        self.active_session_id = active_session_id
        self.active_project_id = active_project_id
        super().__init__(message)


def _require_positive(value: int, label: str) -> None:
    if value <= 0:
        raise InvalidArgumentError(f"Invalid {label} ID. {label}Id must be a positive integer.")


def _project_not_found(project_id: int) -> NotFoundError:
    return NotFoundError(f"Project with ID {project_id} not found.")


def _already_ended(session_id: int) -> ConflictError:
    return ConflictError(f"Session with ID {session_id} has already been ended.")


class SessionService:
    """Start, end and query coding sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock):
        self.session_factory = session_factory
        self.clock = clock

    async def start_session(self, project_id: int) -> SessionResponse:
        """Start a session on a project.

        Raises:
            ActiveSessionConflictError: a session is already active (any project)
            NotFoundError: project does not exist
            StoreError: the insert failed for another reason
        """
        _require_positive(project_id, "Project")
        logger.info("session_start_requested", project_id=project_id)

        async with self.session_factory() as session:
            await self._ensure_no_active_session(session, project_id)

            project = await session.get(Project, project_id)
            if project is None:
                logger.warning("session_start_project_not_found", project_id=project_id)
                raise _project_not_found(project_id)
            project_name = project.name

            now = self.clock.now()
            coding_session = CodingSession(
                project_id=project_id,
                start_time=now,
                created_at=now,
                is_active=True,
                is_auto_stopped=False,
            )
            session.add(coding_session)

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning("session_start_lost_race", project_id=project_id)
                # Report the winner exactly as a later caller would see it
                await self._ensure_no_active_session(session, project_id)
                if not await self._project_exists(session, project_id):
                    raise _project_not_found(project_id) from e
                logger.error("session_start_failed", project_id=project_id, error=str(e), exc_info=True)
                raise StoreError("An error occurred while starting the session. Please try again.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("session_start_failed", project_id=project_id, error=str(e), exc_info=True)
                raise StoreError("An error occurred while starting the session. Please try again.") from e

        logger.info("session_started", session_id=coding_session.id, project_id=project_id)
        return self._to_response(coding_session, project_name)

    async def end_session(self, session_id: int) -> SessionResponse:
        """End an active session, fixing end_time and duration_seconds.

        Raises:
            NotFoundError: session does not exist
            ConflictError: session was already ended
            StoreError: the update failed
        """
        _require_positive(session_id, "Session")
        logger.info("session_end_requested", session_id=session_id)

        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(CodingSession, Project.name)
                    .join(Project, Project.id == CodingSession.project_id)
                    .where(CodingSession.id == session_id)
                )
            ).one_or_none()
            if row is None:
                logger.warning("session_end_not_found", session_id=session_id)
                raise NotFoundError(f"Session with ID {session_id} not found.")

            coding_session, project_name = row
            if not coding_session.is_active:
                logger.warning("session_end_already_ended", session_id=session_id)
                raise _already_ended(session_id)

            end_time = self.clock.now()
            duration = elapsed_seconds(self.clock.localize(coding_session.start_time), end_time)

            try:
                result = await session.execute(
                    update(CodingSession)
                    .where(CodingSession.id == session_id, CodingSession.is_active.is_(True))
                    .values(
                        end_time=end_time,
                        duration_seconds=duration,
                        is_active=False,
                        is_auto_stopped=False,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    # A concurrent end won between our read and this update
                    await session.rollback()
                    logger.warning("session_end_already_ended", session_id=session_id, race=True)
                    raise _already_ended(session_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("session_end_failed", session_id=session_id, error=str(e), exc_info=True)
                raise StoreError("An error occurred while ending the session. Please try again.") from e

        coding_session.end_time = end_time
        coding_session.duration_seconds = duration
        coding_session.is_active = False
        coding_session.is_auto_stopped = False

        logger.info("session_ended", session_id=session_id, duration_seconds=duration)
        return self._to_response(coding_session, project_name)

    async def get_session(self, session_id: int) -> SessionResponse:
        _require_positive(session_id, "Session")
        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(CodingSession, Project.name)
                    .join(Project, Project.id == CodingSession.project_id)
                    .where(CodingSession.id == session_id)
                )
            ).one_or_none()
        if row is None:
            raise NotFoundError(f"Session with ID {session_id} not found.")
        return self._to_response(*row)

    async def list_project_sessions(self, project_id: int) -> list[SessionResponse]:
        """All sessions of a project, most recent start first."""
        _require_positive(project_id, "Project")
        async with self.session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                logger.warning("session_list_project_not_found", project_id=project_id)
                raise _project_not_found(project_id)

            result = await session.execute(
                select(CodingSession)
                .where(CodingSession.project_id == project_id)
                .order_by(CodingSession.start_time.desc(), CodingSession.id.desc())
            )
            sessions = result.scalars().all()

        logger.info("session_list_retrieved", project_id=project_id, count=len(sessions))
        return [self._to_response(s, project.name) for s in sessions]

    async def get_active_session(self, project_id: int) -> ActiveSessionResponse | None:
        """The active session of one project, or None."""
        _require_positive(project_id, "Project")
        async with self.session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                logger.warning("active_session_project_not_found", project_id=project_id)
                raise _project_not_found(project_id)

            result = await session.execute(
                select(CodingSession)
                .where(CodingSession.project_id == project_id, CodingSession.is_active.is_(True))
                .limit(1)
            )
            active = result.scalar_one_or_none()

        if active is None:
            return None
        return self._to_active_response(active, project.name)

    async def get_any_active_session(self) -> ActiveSessionResponse | None:
        """The single active session across all projects, or None."""
        async with self.session_factory() as session:
            row = await self._find_active(session)
        if row is None:
            return None
        return self._to_active_response(*row)

    # ------------------------------------------------------------------ helpers

    async def _find_active(self, session: AsyncSession) -> tuple[CodingSession, str] | None:
        result = await session.execute(
            select(CodingSession, Project.name)
            .join(Project, Project.id == CodingSession.project_id)
            .where(CodingSession.is_active.is_(True))
            .limit(1)
        )
        return result.one_or_none()

    async def _ensure_no_active_session(self, session: AsyncSession, project_id: int) -> None:
        row = await self._find_active(session)
        if row is None:
            return

        active, active_project_name = row
        if active.project_id == project_id:
            logger.warning(
                "session_start_conflict_same_project",
                project_id=project_id,
                active_session_id=active.id,
            )
            message = (
                f"Project '{active_project_name}' already has an active session. "
                "Please stop the current session before starting a new one."
            )
        else:
            logger.warning(
                "session_start_conflict_other_project",
                project_id=project_id,
                active_project_id=active.project_id,
                active_session_id=active.id,
            )
            message = (
                f"You already have an active session on project '{active_project_name}'. "
                "You can only work on one project at a time. "
                "Please stop the current session before starting a new one."
            )
        raise ActiveSessionConflictError(
            message,
            active_session_id=active.id,
            active_project_id=active.project_id,
        )

    async def _project_exists(self, session: AsyncSession, project_id: int) -> bool:
        result = await session.execute(select(Project.id).where(Project.id == project_id))
        return result.scalar_one_or_none() is not None

    def _to_response(self, coding_session: CodingSession, project_name: str) -> SessionResponse:
        return SessionResponse(
            id=coding_session.id,
            project_id=coding_session.project_id,
            project_name=project_name,
            start_time=self.clock.localize(coding_session.start_time),
            end_time=self.clock.localize(coding_session.end_time),
            duration_seconds=coding_session.duration_seconds,
            is_active=coding_session.is_active,
            is_auto_stopped=coding_session.is_auto_stopped,
            created_at=self.clock.localize(coding_session.created_at),
        )

    def _to_active_response(self, coding_session: CodingSession, project_name: str) -> ActiveSessionResponse:
        start_time = self.clock.localize(coding_session.start_time)
        return ActiveSessionResponse(
            id=coding_session.id,
            project_id=coding_session.project_id,
            project_name=project_name,
            start_time=start_time,
            elapsed_seconds=elapsed_seconds(start_time, self.clock.now()),
        )
