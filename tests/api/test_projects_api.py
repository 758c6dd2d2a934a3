"""Integration tests for the project registry API.

Tests cover:
- Envelope shape and camelCase payloads
- 201 + Location on create, 400 on invalid input, 404 and 409 mapping
- Case-insensitive name uniqueness
- Rollups in list responses and cascade on delete
"""

import pytest

pytestmark = pytest.mark.integration


async def test_create_project_returns_envelope(client):
    response = await client.post("/api/projects", json={"name": "  Website  ", "description": None})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Project created successfully."
    data = body["data"]
    assert data["name"] == "Website"
    assert data["description"] is None
    assert data["totalSessions"] == 0
    assert data["totalHours"] == 0
    assert data["createdAt"].endswith("+08:00")
    assert response.headers["location"] == f"/api/projects/{data['id']}"


async def test_create_without_description(client):
    response = await client.post("/api/projects", json={"name": "Docs"})

    assert response.status_code == 201
    assert response.json()["data"]["description"] is None


@pytest.mark.parametrize("name", ["", "   "])
async def test_create_with_blank_name_is_400(client, name):
    response = await client.post("/api/projects", json={"name": name})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Project name is required and cannot be empty."
    assert body["data"] is None


async def test_create_with_overlong_name_is_400(client):
    response = await client.post("/api/projects", json={"name": "x" * 201})

    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_create_without_body_is_400(client):
    response = await client.post("/api/projects")

    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_duplicate_name_differing_in_case_and_whitespace_is_409(client, create_project):
    await create_project("Foo")

    response = await client.post("/api/projects", json={"name": "foo "})

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert "already exists" in body["message"]


async def test_list_projects_newest_first(client, create_project, clock):
    await create_project("First")
    clock.advance(minutes=1)
    await create_project("Second")

    response = await client.get("/api/projects")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Retrieved 2 project(s)."
    assert [p["name"] for p in body["data"]] == ["Second", "First"]


async def test_list_projects_when_empty(client):
    response = await client.get("/api/projects")

    assert response.status_code == 200
    assert response.json()["data"] == []


async def test_get_project(client, create_project):
    created = await create_project("Website", "Marketing site")

    response = await client.get(f"/api/projects/{created['id']}")

    assert response.status_code == 200
    assert response.json()["data"]["description"] == "Marketing site"


async def test_get_missing_project_is_404(client):
    response = await client.get("/api/projects/999")

    assert response.status_code == 404
    body = response.json()
    assert body == {"success": False, "message": "Project with ID 999 not found.", "data": None}


async def test_non_positive_id_is_400(client):
    response = await client.get("/api/projects/0")

    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_update_project(client, create_project, clock):
    created = await create_project("Website")
    clock.advance(hours=1)

    response = await client.put(
        f"/api/projects/{created['id']}",
        json={"name": "Website v2", "description": "  Relaunch  "},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Website v2"
    assert data["description"] == "Relaunch"
    assert data["updatedAt"] != data["createdAt"]


async def test_update_to_own_name_in_other_case_is_allowed(client, create_project):
    created = await create_project("Website")

    response = await client.put(f"/api/projects/{created['id']}", json={"name": "WEBSITE"})

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "WEBSITE"


async def test_update_to_other_projects_name_is_409(client, create_project):
    await create_project("Alpha")
    bravo = await create_project("Bravo")

    response = await client.put(f"/api/projects/{bravo['id']}", json={"name": "alpha"})

    assert response.status_code == 409


async def test_update_missing_project_is_404(client):
    response = await client.put("/api/projects/42", json={"name": "Anything"})

    assert response.status_code == 404


async def test_delete_project_removes_its_sessions(client, create_project):
    project = await create_project("Website")
    started = await client.post("/api/sessions/start", json={"projectId": project["id"]})
    session_id = started.json()["data"]["id"]
    await client.post("/api/sessions/end", json={"sessionId": session_id})

    response = await client.delete(f"/api/projects/{project['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Project deleted successfully.", "data": None}
    assert (await client.get(f"/api/projects/{project['id']}")).status_code == 404
    assert (await client.get(f"/api/sessions/{session_id}")).status_code == 404


async def test_delete_missing_project_is_404(client):
    response = await client.delete("/api/projects/8")

    assert response.status_code == 404
