"""
Security tests for the auth routes.

Tests cover:
- Registration validation, duplicate emails, session cookie
- Login failures that must look identical
- Logout cookie clearing
- /me with missing, invalid, expired and orphaned tokens
"""
import pytest

from auth_utils import create_jwt, create_expired_jwt
from tests.conftest import register_user


@pytest.mark.asyncio
async def test_register_sets_cookie_and_me_returns_same_email(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "New@Example.com", "password": "password123", "name": "Nia"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new@example.com"
    assert body["name"] == "Nia"
    assert "passwordHash" not in body and "password_hash" not in body
    assert "auth" in response.cookies

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "max-age=604800" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "path=/" in set_cookie

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "new@example.com"
    assert me.json()["id"] == body["id"]
    assert "createdAt" in me.json()


@pytest.mark.asyncio
async def test_duplicate_registration_is_conflict(client, session_factory):
    await register_user(client, email="dup@example.com")

    response = await client.post(
        "/api/auth/register",
        json={"email": "dup@example.com", "password": "another-password"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"

    from sqlalchemy import select, func
    from database_models import User
    async with session_factory() as session:
        count = await session.scalar(select(func.count()).select_from(User).where(User.email == "dup@example.com"))
    assert count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"email": "not-an-email", "password": "password123"},
    {"email": "short@example.com", "password": "short"},
    {"email": "noname@example.com", "password": "password123", "name": ""},
    {"password": "password123"},
])
async def test_register_rejects_invalid_input(client, payload):
    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid input"
    assert "auth" not in response.cookies


@pytest.mark.asyncio
async def test_register_rejects_malformed_json(client):
    response = await client.post(
        "/api/auth/register",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_success_sets_cookie(client, make_client):
    await register_user(client, email="login@example.com", password="password123")

    fresh = await make_client()
    response = await fresh.post("/api/auth/login", json={"email": "login@example.com", "password": "password123"})

    assert response.status_code == 200
    assert response.json()["email"] == "login@example.com"
    assert "auth" in response.cookies

    me = await fresh.get("/api/auth/me")
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client, make_client):
    await register_user(client, email="known@example.com", password="password123")
    fresh = await make_client()

    wrong_password = await fresh.post(
        "/api/auth/login", json={"email": "known@example.com", "password": "wrong-password"}
    )
    unknown_user = await fresh.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "password123"}
    )

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()
    assert "set-cookie" not in wrong_password.headers
    assert "set-cookie" not in unknown_user.headers


@pytest.mark.asyncio
async def test_login_rejects_bad_schema(client):
    response = await client.post("/api/auth/login", json={"email": "x@example.com"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_logout_always_clears_cookie(client, make_client):
    anonymous = await make_client()
    response = await anonymous.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert "max-age=0" in response.headers["set-cookie"].lower()

    await register_user(client, email="bye@example.com")
    response = await client.post("/api/auth/logout")
    assert response.status_code == 200
    assert "max-age=0" in response.headers["set-cookie"].lower()

    me = await client.get("/api/auth/me")
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_me_without_cookie(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_me_with_expired_token(client, make_client):
    user = await register_user(client, email="expired@example.com")
    fresh = await make_client()
    token = create_expired_jwt(user["id"], user["email"])

    response = await fresh.get("/api/auth/me", headers={"Cookie": f"auth={token}"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_me_with_forged_token(make_client):
    fresh = await make_client()
    response = await fresh.get("/api/auth/me", headers={"Cookie": "auth=header.payload.signature"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_me_with_token_for_missing_user(make_client):
    fresh = await make_client()
    token = create_jwt("no-such-user", "ghost@example.com")

    response = await fresh.get("/api/auth/me", headers={"Cookie": f"auth={token}"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
