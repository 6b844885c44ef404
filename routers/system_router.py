"""
Operational endpoints: liveness, Prometheus metrics, database check.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, ping_db
from utils.metrics import METRICS_CONTENT_TYPE, metrics_text
from utils.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["system"])

PROCESS_START = time.monotonic()


def uptime_seconds() -> float:
    return time.monotonic() - PROCESS_START


@router.get("/health")
async def health():
    return JSONResponse(status_code=200, content={"status": "ok", "uptime": uptime_seconds()})


@router.get("/metrics")
async def metrics():
    return Response(
        content=metrics_text(),
        status_code=200,
        media_type=METRICS_CONTENT_TYPE,
        headers={"Cache-Control": "no-store"},
    )


@router.get("/test")
async def database_check(db: AsyncSession = Depends(get_db)):
    """Check that the database answers and list its tables."""
    try:
        database = await ping_db(db)
        return JSONResponse(
            status_code=200,
            content={"success": True, "message": "API is working", "database": database},
        )
    except Exception as e:
        logger.exception("Database check failed")
        return error_response(f"Failed to connect to database: {type(e).__name__}", status=500)
