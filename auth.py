"""
Authentication routes and dependencies
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from database import get_db
from crud.user import UserRepository
from auth_utils import AuthTokenError, hash_password, verify_password, create_jwt, decode_jwt, validate_email
from config.settings import settings, IS_PRODUCTION
from utils.responses import unauthorized_response

logger = logging.getLogger(__name__)

# 7 days in seconds
AUTH_COOKIE_MAX_AGE = 60 * 60 * 24 * 7

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request models
class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    name: Optional[str] = Field(default=None, min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not validate_email(value):
            raise ValueError("Invalid email format")
        return value.lower()


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not validate_email(value):
            raise ValueError("Invalid email format")
        return value.lower()


class Principal(BaseModel):
    """Identity taken from a verified auth token."""
    user_id: str
    email: Optional[str] = None


def set_auth_cookie(response: JSONResponse, token: str, max_age: int = AUTH_COOKIE_MAX_AGE) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="lax",
        path="/",
        max_age=max_age,
    )


async def verify_auth(request: Request) -> Optional[Principal]:
    """
    Read the auth cookie and verify it.

    Returns the principal, or None when the cookie is missing or the token
    does not verify for any reason. Never raises.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        return None
    try:
        payload = decode_jwt(token)
        return Principal(user_id=str(payload["sub"]), email=payload.get("email"))
    except AuthTokenError as e:
        logger.debug(f"Rejected auth token: {e}")
        return None
    except Exception as e:
        logger.warning(f"Auth verification failed: {e}")
        return None


# Dependency for guarded routes; handlers answer 401 themselves on None
async def get_principal(request: Request) -> Optional[Principal]:
    return await verify_auth(request)


@auth_router.post("/register")
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account and start a session"""
    try:
        user_repo = UserRepository(db)

        existing_user = await user_repo.get_user_by_email(request.email)
        if existing_user:
            return JSONResponse(status_code=409, content={"error": "Email already registered"})

        user = await user_repo.create_user({
            "email": request.email,
            "password_hash": hash_password(request.password),
            "name": request.name,
        })
        token = create_jwt(user.id, user.email)
        await db.commit()

        response = JSONResponse(status_code=201, content=user.to_dict())
        set_auth_cookie(response, token)
        logger.info("Registered user", extra={"user_id": user.id})
        return response
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        return JSONResponse(status_code=409, content={"error": "Email already registered"})
    except Exception:
        await db.rollback()
        logger.exception("Registration failed")
        return JSONResponse(status_code=500, content={"error": "Registration failed"})


@auth_router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login and set the auth cookie"""
    try:
        user_repo = UserRepository(db)

        # Same 401 for unknown email and wrong password
        user = await user_repo.get_user_by_email(request.email)
        if not user or not verify_password(request.password, user.password_hash):
            return JSONResponse(status_code=401, content={"error": "Invalid email or password"})

        token = create_jwt(user.id, user.email)

        response = JSONResponse(
            status_code=200,
            content={"id": user.id, "email": user.email, "name": user.name},
        )
        set_auth_cookie(response, token)
        logger.info("User logged in", extra={"user_id": user.id})
        return response
    except Exception:
        logger.exception("Login failed")
        return JSONResponse(status_code=500, content={"error": "Login failed"})


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth cookie"""
    response = JSONResponse(status_code=200, content={"success": True})
    # Clear the cookie by setting max_age=0
    set_auth_cookie(response, "", max_age=0)
    return response


@auth_router.get("/me")
async def get_current_user_info(request: Request, db: AsyncSession = Depends(get_db)):
    """Get current user information from the auth cookie"""
    principal = await verify_auth(request)
    if principal is None:
        return unauthorized_response()

    try:
        user = await UserRepository(db).get_user_by_id(principal.user_id)
    except Exception:
        logger.exception("Session lookup failed")
        return unauthorized_response()

    if not user:
        return unauthorized_response()

    return JSONResponse(status_code=200, content=user.to_dict())
