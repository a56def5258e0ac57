"""Health check endpoints.

Provides:
- Basic liveness probe (/health/)
- Readiness probe with a database ping (/health/ready)
"""

import time
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.config import get_settings
from db import database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()


@router.get("/", response_model=dict[str, Any])
async def root() -> dict[str, Any]:
    """Liveness probe with app name and version."""
    settings = get_settings()
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "ok",
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
    }


@router.get("/ready", response_model=dict[str, Any])
async def readiness():
    """Readiness probe. Returns 503 when the database is unreachable."""
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok"}
