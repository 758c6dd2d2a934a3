"""Re-export all models so Base.metadata sees them."""

from devflow.db.models.coding_session import CodingSession
from devflow.db.models.project import Project

__all__ = [
    "CodingSession",
    "Project",
]
