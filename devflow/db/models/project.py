"""Project model: named buckets that coding sessions are recorded against."""

from sqlalchemy import Column, DateTime, Index, Integer, String, func

from devflow.db.base import Base

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=True)

    # Set from the injected Clock; updated_at stays NULL until the first update
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


# Case-insensitive name uniqueness, enforced by the store as well as the service
Index("uq_projects_name_lower", func.lower(Project.name), unique=True)
