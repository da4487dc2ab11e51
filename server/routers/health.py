"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app reach its database?)
"""

import json
import logging
from datetime import datetime, timezone

import asyncpg
from fastapi import APIRouter, Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app initialization
_db_pool = None


def set_health_dependencies(db_pool=None):
    """Set dependencies for health checks."""
    global _db_pool
    _db_pool = db_pool


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app handle requests?

    Returns 503 if the database is not configured or unreachable.
    """
    if _db_pool is None:
        database = {"status": "not_configured"}
    else:
        try:
            async with _db_pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            database = {"status": "ok"}
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning(f"Database health check failed: {e}")
            database = {"status": "error", "message": str(e)}

    healthy = database["status"] == "ok"
    return Response(
        content=json.dumps({
            "status": "ok" if healthy else "degraded",
            "checks": {"database": database},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=200 if healthy else 503,
        media_type="application/json",
    )
