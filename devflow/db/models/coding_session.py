"""CodingSession model: one timed interval of work on a project."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, text

from devflow.db.base import Base


class CodingSession(Base):
    """A session is Active from creation until ended, then Ended forever.

    end_time and duration_seconds are NULL while active and written exactly
    once by the end transition. is_auto_stopped is reserved for idle
    detection and is always False today.

    The partial unique index on is_active allows at most one row with
    is_active = true across the whole table, so two concurrent starts cannot
    both commit.

    Python-level defaults are set in __init__ so pre-flush instances carry
    the same values the row will have.
    """

    __tablename__ = "sessions"
    __table_args__ = (
        Index("ix_sessions_project_id_is_active", "project_id", "is_active"),
        Index(
            "uq_sessions_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_auto_stopped = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False)

    def __init__(self, **kwargs: object) -> None:
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("is_auto_stopped", False)
        kwargs.setdefault("end_time", None)
        kwargs.setdefault("duration_seconds", None)
        super().__init__(**kwargs)
