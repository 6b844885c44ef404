"""
ClinOps API
Projects, diagrams, dashboard reviews/widgets, feedback, AI chat history and
response cache, behind cookie-based JWT sessions.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from auth import auth_router
from routers.projects_router import router as projects_router
from routers.diagrams_router import router as diagrams_router
from routers.feedback_router import router as feedback_router
from routers.dashboard_router import router as dashboard_router
from routers.ai_router import router as ai_router
from routers.system_router import router as system_router
from utils.logging_utils import setup_logging, correlation_id_ctx
from utils.metrics import MetricsMiddleware, instrument_engine
from database import engine, init_db
from config.settings import settings, IS_PRODUCTION

# ============================================================================
# LOGGING
# ============================================================================

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)
access_logger = logging.getLogger("clinops.access")

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="ClinOps API")

instrument_engine(engine)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Uncaught exception", extra={"path": request.url.path})
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Internal Server Error"}
            )


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reuse the caller's x-correlation-id or mint one, expose it to logging
    through correlation_id_ctx, echo it on the response and write one access
    log line per request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("x-correlation-id", "").strip() or str(uuid.uuid4())
        ctx_token = correlation_id_ctx.set(correlation_id)
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000.0
            response.headers["x-correlation-id"] = correlation_id
            access_logger.info(
                "%s %s %d %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return response
        finally:
            correlation_id_ctx.reset(ctx_token)


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: HSTS (production), X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # Only set in production where HTTPS is guaranteed
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


# Added innermost first: the correlation id is set before anything logs
app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON or a body that fails its schema is a 400, not FastAPI's 422"""
    logger.info("Rejected invalid input", extra={"path": request.url.path, "errors": len(exc.errors())})
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid input"})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error", exc_info=exc, extra={"path": request.url.path})
    return JSONResponse(status_code=500, content={"success": False, "error": "Database error"})


# ============================================================================
# STARTUP
# ============================================================================

@app.on_event("startup")
async def check_env_keys_on_startup():
    """Warn about missing configuration (non-fatal)"""
    if not settings.jwt_secret:
        logger.warning("Startup check: JWT_SECRET is not set; login and registration will fail")
    else:
        logger.info("Startup check: JWT_SECRET is set")


# Initialize database on startup
@app.on_event("startup")
async def initialize_database():
    """Create all tables."""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception:
        logger.exception("Database initialization failed")
        raise

# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(diagrams_router)
app.include_router(feedback_router)
app.include_router(dashboard_router)
app.include_router(ai_router)
app.include_router(system_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
