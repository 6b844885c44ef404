"""
Integration tests for the project routes: scoping, ownership checks and
the idempotent ensure endpoint.
"""
import pytest
from sqlalchemy import select, func

from crud.project import ProjectRepository, generate_project_id
from database_models import Project
from tests.conftest import register_user


async def _count_projects(session_factory, **filters):
    async with session_factory() as session:
        query = select(func.count()).select_from(Project)
        for column, value in filters.items():
            query = query.where(getattr(Project, column) == value)
        return await session.scalar(query)


@pytest.mark.asyncio
async def test_project_repository_round_trip(test_db):
    repo = ProjectRepository(test_db)

    project = await repo.create_project(user_id="owner-1", name="Trial A", description="Phase II")
    assert project.id.startswith("project-")
    assert project.user_id == "owner-1"

    updated = await repo.update_project(project, {"name": "Trial B", "user_id": "intruder"})
    assert updated.name == "Trial B"
    assert updated.user_id == "owner-1"

    assert [p.id for p in await repo.list_for_user("owner-1")] == [project.id]
    assert await repo.list_for_user("someone-else") == []

    await repo.delete_project(updated)
    assert await repo.get_by_id(project.id) is None


def test_generated_project_ids_are_unique():
    ids = {generate_project_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i.rsplit("-", 1)[1]) == 9 for i in ids)


@pytest.mark.asyncio
async def test_full_project_lifecycle(client):
    await register_user(client, email="owner@example.com")

    created = await client.post("/api/projects", json={"name": "  Oncology Study  ", "description": "  "})
    assert created.status_code == 201
    project = created.json()["data"]
    assert created.json()["success"] is True
    assert project["name"] == "Oncology Study"
    assert project["description"] is None

    listed = await client.get("/api/projects")
    assert listed.status_code == 200
    assert [p["id"] for p in listed.json()["data"]] == [project["id"]]

    fetched = await client.get(f"/api/projects/{project['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["name"] == "Oncology Study"

    patched = await client.patch(
        f"/api/projects/{project['id']}",
        json={"name": " Renamed ", "description": "Updated description"},
    )
    assert patched.status_code == 200
    assert patched.json()["data"]["name"] == "Renamed"
    assert patched.json()["data"]["description"] == "Updated description"
    assert patched.json()["data"]["userId"] == project["userId"]

    cleared = await client.patch(f"/api/projects/{project['id']}", json={"description": ""})
    assert cleared.json()["data"]["description"] is None
    assert cleared.json()["data"]["name"] == "Renamed"

    deleted = await client.delete(f"/api/projects/{project['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Project deleted successfully"

    missing = await client.get(f"/api/projects/{project['id']}")
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   ", None])
async def test_blank_project_name_is_rejected(client, session_factory, name):
    await register_user(client, email="blank@example.com")

    response = await client.post("/api/projects", json={"name": name})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Project name is required"}
    assert await _count_projects(session_factory) == 0


@pytest.mark.asyncio
async def test_other_users_project_is_forbidden(client, make_client):
    await register_user(client, email="alice@example.com")
    project = (await client.post("/api/projects", json={"name": "Alice's"})).json()["data"]

    bob = await make_client()
    await register_user(bob, email="bob@example.com")

    assert (await bob.get(f"/api/projects/{project['id']}")).status_code == 403
    assert (await bob.patch(f"/api/projects/{project['id']}", json={"name": "Mine now"})).status_code == 403
    assert (await bob.delete(f"/api/projects/{project['id']}")).status_code == 403

    # Bob's list never shows Alice's project
    assert (await bob.get("/api/projects")).json()["data"] == []

    still_there = await client.get(f"/api/projects/{project['id']}")
    assert still_there.json()["data"]["name"] == "Alice's"


@pytest.mark.asyncio
async def test_project_routes_require_session(client, make_client):
    await register_user(client, email="carol@example.com")
    project = (await client.post("/api/projects", json={"name": "Carol's"})).json()["data"]

    anonymous = await make_client()
    for method, path, kwargs in [
        ("GET", "/api/projects", {}),
        ("POST", "/api/projects", {"json": {"name": "x"}}),
        ("GET", f"/api/projects/{project['id']}", {}),
        ("PATCH", f"/api/projects/{project['id']}", {"json": {"name": "x"}}),
        ("DELETE", f"/api/projects/{project['id']}", {}),
        ("POST", "/api/projects/ensure", {"json": {"projectId": "p-1"}}),
    ]:
        response = await anonymous.request(method, path, **kwargs)
        assert response.status_code == 401, (method, path)
        assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_missing_project_is_not_found(client):
    await register_user(client, email="dave@example.com")

    assert (await client.get("/api/projects/nope")).status_code == 404
    assert (await client.patch("/api/projects/nope", json={"name": "x"})).status_code == 404
    assert (await client.delete("/api/projects/nope")).status_code == 404


@pytest.mark.asyncio
async def test_ensure_project_is_idempotent(client, session_factory):
    await register_user(client, email="erin@example.com")

    first = await client.post("/api/projects/ensure", json={"projectId": "guest-123", "name": "Guest project"})
    second = await client.post("/api/projects/ensure", json={"projectId": "guest-123", "name": "Other name"})

    assert first.status_code == 200
    assert first.json()["message"] == "Project created successfully"
    assert second.status_code == 200
    assert second.json()["success"] is True
    assert second.json()["message"] == "Project already exists"
    assert second.json()["data"]["name"] == "Guest project"
    assert await _count_projects(session_factory, id="guest-123") == 1


@pytest.mark.asyncio
async def test_ensure_project_defaults_and_validation(client):
    await register_user(client, email="fay@example.com")

    missing_id = await client.post("/api/projects/ensure", json={"name": "x"})
    assert missing_id.status_code == 400

    created = await client.post("/api/projects/ensure", json={"projectId": "guest-456"})
    assert created.json()["data"]["name"] == "Untitled Project"


@pytest.mark.asyncio
async def test_ensure_project_owned_by_someone_else(client, make_client):
    await register_user(client, email="gina@example.com")
    await client.post("/api/projects/ensure", json={"projectId": "shared-id"})

    other = await make_client()
    await register_user(other, email="hank@example.com")
    response = await other.post("/api/projects/ensure", json={"projectId": "shared-id"})

    assert response.status_code == 403
    assert response.json()["error"] == "Project exists but belongs to another user"
