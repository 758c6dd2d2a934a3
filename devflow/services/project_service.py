"""ProjectService: project registry with read-time session rollups.

- Names are trimmed on write and unique case-insensitively
- Rollups (total sessions, total hours) are computed on read, never stored
- Delete removes the project's sessions first, then the project, in one transaction
"""

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devflow.core.clock import Clock
from devflow.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError, StoreError
from devflow.db.models.coding_session import CodingSession
from devflow.db.models.project import DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH, Project
from devflow.domain.statistics import total_hours
from devflow.schemas.projects import ProjectResponse

logger = structlog.get_logger(__name__)


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("Project name is required and cannot be empty.")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"Project name must be between 1 and {NAME_MAX_LENGTH} characters.")
    return name


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    description = description.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidArgumentError(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters.")
    return description


def _require_id(project_id: int) -> None:
    if project_id <= 0:
        raise InvalidArgumentError("Invalid project ID. ProjectId must be a positive integer.")


def _not_found(project_id: int) -> NotFoundError:
    return NotFoundError(f"Project with ID {project_id} not found.")


def _name_taken(name: str) -> ConflictError:
    return ConflictError(f"A project with the name '{name}' already exists.")


class ProjectService:
    """Create, list, update and delete projects."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock):
        self.session_factory = session_factory
        self.clock = clock

    async def create_project(self, name: str, description: str | None = None) -> ProjectResponse:
        name = _clean_name(name)
        description = _clean_description(description)
        logger.info("project_create_requested", name=name)

        async with self.session_factory() as session:
            if await self._find_by_name(session, name) is not None:
                logger.warning("project_create_conflict", name=name)
                raise _name_taken(name)

            project = Project(
                name=name,
                description=description,
                created_at=self.clock.now(),
                updated_at=None,
            )
            session.add(project)
            await self._commit(session, "project_create_failed", name=name)

            logger.info("project_created", project_id=project.id, name=name)
            return self._to_response(project, total_sessions=0, hours=0)

    async def list_projects(self) -> list[ProjectResponse]:
        """All projects, newest first, each with its session rollups."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Project).order_by(Project.created_at.desc(), Project.id.desc())
            )
            projects = result.scalars().all()
            counts, hours = await self._rollups(session)

        logger.info("projects_listed", count=len(projects))
        return [
            self._to_response(p, total_sessions=counts.get(p.id, 0), hours=hours.get(p.id, 0))
            for p in projects
        ]

    async def get_project(self, project_id: int) -> ProjectResponse:
        _require_id(project_id)
        async with self.session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                raise _not_found(project_id)
            counts, hours = await self._rollups(session, project_id)

        return self._to_response(project, total_sessions=counts.get(project_id, 0), hours=hours.get(project_id, 0))

    async def update_project(
        self,
        project_id: int,
        name: str,
        description: str | None = None,
    ) -> ProjectResponse:
        """Replace name and description; the record's own name never counts as a clash."""
        _require_id(project_id)
        name = _clean_name(name)
        description = _clean_description(description)
        logger.info("project_update_requested", project_id=project_id, name=name)

        async with self.session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                logger.warning("project_update_not_found", project_id=project_id)
                raise _not_found(project_id)

            clash = await self._find_by_name(session, name, exclude_id=project_id)
            if clash is not None:
                logger.warning("project_update_conflict", project_id=project_id, clashing_id=clash.id)
                raise _name_taken(name)

            project.name = name
            project.description = description
            project.updated_at = self.clock.now()
            await self._commit(session, "project_update_failed", name=name, project_id=project_id)

            counts, hours = await self._rollups(session, project_id)

        logger.info("project_updated", project_id=project_id)
        return self._to_response(project, total_sessions=counts.get(project_id, 0), hours=hours.get(project_id, 0))

    async def delete_project(self, project_id: int) -> None:
        _require_id(project_id)
        async with self.session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                logger.warning("project_delete_not_found", project_id=project_id)
                raise _not_found(project_id)

            try:
                result = await session.execute(
                    delete(CodingSession).where(CodingSession.project_id == project_id)
                )
                await session.delete(project)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("project_delete_failed", project_id=project_id, error=str(e), exc_info=True)
                raise StoreError("An error occurred while deleting the project. Please try again.") from e

        logger.info("project_deleted", project_id=project_id, sessions_deleted=result.rowcount)

    # ------------------------------------------------------------------ helpers

    async def _find_by_name(
        self,
        session: AsyncSession,
        name: str,
        exclude_id: int | None = None,
    ) -> Project | None:
        query = select(Project).where(func.lower(Project.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Project.id != exclude_id)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def _commit(self, session: AsyncSession, event: str, name: str, **fields) -> None:
        """Commit, mapping the case-insensitive name index to a conflict."""
        try:
            await session.commit()
        except IntegrityError as e:
            # Lost a race against a concurrent write of the same name
            await session.rollback()
            logger.warning("project_name_index_conflict", name=name, **fields)
            raise _name_taken(name) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(event, name=name, error=str(e), exc_info=True, **fields)
            raise StoreError("An error occurred while saving the project. Please try again.") from e

    async def _rollups(
        self,
        session: AsyncSession,
        project_id: int | None = None,
    ) -> tuple[dict[int, int], dict[int, int]]:
        """Session counts and completed hours keyed by project id."""
        count_query = select(CodingSession.project_id, func.count(CodingSession.id)).group_by(
            CodingSession.project_id
        )
        interval_query = select(
            CodingSession.project_id,
            CodingSession.start_time,
            CodingSession.end_time,
        ).where(CodingSession.end_time.is_not(None))
        if project_id is not None:
            count_query = count_query.where(CodingSession.project_id == project_id)
            interval_query = interval_query.where(CodingSession.project_id == project_id)

        counts = {pid: count for pid, count in (await session.execute(count_query)).all()}

        intervals: dict[int, list] = {}
        for pid, start, end in (await session.execute(interval_query)).all():
            intervals.setdefault(pid, []).append((self.clock.localize(start), self.clock.localize(end)))
        hours = {pid: total_hours(spans) for pid, spans in intervals.items()}

        return counts, hours

    def _to_response(self, project: Project, total_sessions: int, hours: int) -> ProjectResponse:
        return ProjectResponse(
            id=project.id,
            name=project.name,
            description=project.description,
            created_at=self.clock.localize(project.created_at),
            updated_at=self.clock.localize(project.updated_at),
            total_sessions=total_sessions,
            total_hours=hours,
        )
