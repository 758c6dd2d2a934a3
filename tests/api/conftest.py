"""API-specific test fixtures.

The app under test is built with create_app() and its service dependencies
overridden to use the per-test SQLite engine and frozen clock from the root
conftest. Requests go through httpx's ASGI transport in the test's own event
loop, so no lifespan runs and no real database is initialized.
"""

import pytest
from httpx import ASGITransport, AsyncClient

import devflow.db.base as db_mod
from devflow.api.routes.projects import get_project_service
from devflow.api.routes.sessions import get_session_service, get_statistics_service
from devflow.main import create_app


@pytest.fixture
def app(project_service, session_service, statistics_service, session_factory, monkeypatch):
    # /api/ready reads the global factory directly
    monkeypatch.setattr(db_mod, "_session_factory", session_factory)

    app = create_app()
    app.dependency_overrides[get_project_service] = lambda: project_service
    app.dependency_overrides[get_session_service] = lambda: session_service
    app.dependency_overrides[get_statistics_service] = lambda: statistics_service

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def create_project(client):
    """POST a project and return the data of the envelope."""

    async def _create(name: str, description: str | None = None) -> dict:
        response = await client.post("/api/projects", json={"name": name, "description": description})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
