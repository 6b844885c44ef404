"""
Unit tests for UserRepository, password hashing and token helpers
"""
from datetime import timedelta

import jwt
import pytest
from crud.user import UserRepository
from auth_utils import (
    AuthTokenError,
    hash_password,
    verify_password,
    create_jwt,
    create_expired_jwt,
    decode_jwt,
    parse_duration,
)
from config.settings import settings


@pytest.mark.asyncio
async def test_create_and_get_user(test_db):
    """
    Test creating a new user and retrieving it by email.

    This test verifies:
    - User creation via UserRepository.create_user
    - User retrieval via UserRepository.get_user_by_email
    - Email matching and user object existence
    """
    user_repo = UserRepository(test_db)

    test_email = "Test@Example.com"
    hashed_pwd = hash_password("test_password_123")

    created_user = await user_repo.create_user({
        "email": test_email,
        "password_hash": hashed_pwd,
        "name": "Tess",
    })

    assert created_user.id
    assert created_user.email == test_email.lower()  # Email should be lowercased
    assert created_user.password_hash == hashed_pwd
    assert created_user.created_at is not None

    await test_db.commit()

    retrieved_user = await user_repo.get_user_by_email(test_email)
    assert retrieved_user is not None
    assert retrieved_user.id == created_user.id

    by_id = await user_repo.get_user_by_id(created_user.id)
    assert by_id is not None
    assert by_id.email == test_email.lower()


@pytest.mark.asyncio
async def test_user_dict_never_contains_password_hash(test_db):
    user = await UserRepository(test_db).create_user({
        "email": "dict@example.com",
        "password_hash": hash_password("password123"),
    })

    data = user.to_dict()

    assert set(data) == {"id", "email", "name", "createdAt"}
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_login_verification(test_db):
    """
    Test password verification for login.

    This test verifies:
    - Password hashing and storage
    - Password verification using verify_password
    """
    user_repo = UserRepository(test_db)
    test_password = "secure_password_456"

    await user_repo.create_user({
        "email": "login_test@example.com",
        "password_hash": hash_password(test_password),
    })
    await test_db.commit()

    retrieved_user = await user_repo.get_user_by_email("login_test@example.com")

    assert verify_password(test_password, retrieved_user.password_hash) is True
    assert verify_password("wrong_password", retrieved_user.password_hash) is False


def test_hash_is_not_plaintext():
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert hashed.startswith("$argon2")


def test_token_round_trip_carries_claims():
    token = create_jwt("user-1", "a@example.com")

    claims = decode_jwt(token)

    assert claims["sub"] == "user-1"
    assert claims["email"] == "a@example.com"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60


def test_custom_expiry():
    claims = decode_jwt(create_jwt("user-1", "a@example.com", expires_in="1h"))
    assert claims["exp"] - claims["iat"] == 3600


def test_zero_expiry_is_not_replaced_by_default():
    token = create_jwt("user-1", "a@example.com", expires_in=0)

    claims = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"], options={"verify_exp": False})
    assert claims["exp"] == claims["iat"]
    with pytest.raises(AuthTokenError):
        decode_jwt(token)


def test_expired_token_is_rejected():
    token = create_expired_jwt("user-1", "a@example.com", expired_seconds_ago=5)
    with pytest.raises(AuthTokenError):
        decode_jwt(token)


def test_tampered_token_is_rejected():
    forged = jwt.encode({"sub": "user-1", "email": "a@example.com", "exp": 9999999999}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthTokenError):
        decode_jwt(forged)


def test_garbage_token_is_rejected():
    with pytest.raises(AuthTokenError):
        decode_jwt("not-a-jwt")


def test_missing_secret_fails(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", None)
    with pytest.raises(ValueError):
        create_jwt("user-1", "a@example.com")


@pytest.mark.parametrize("value, expected", [
    ("7d", timedelta(days=7)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("45s", timedelta(seconds=45)),
    ("2w", timedelta(weeks=2)),
    ("90", timedelta(seconds=90)),
    (60, timedelta(seconds=60)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


def test_parse_duration_rejects_nonsense():
    with pytest.raises(ValueError):
        parse_duration("soon")
