"""FastAPI server for the event tracker stats engine."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config import config
from logging_config import setup_logging
from models.achievements import ACHIEVEMENTS
from services.achievement_service import AchievementService
from services.stats_service import StatsService
from stores.attendance_store import AttendanceStore, close_attendance_store, get_attendance_store

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


# =============================================================================
# Services (initialized in lifespan)
# =============================================================================

_attendance_store: Optional[AttendanceStore] = None


async def _init_database_services():
    """Initialize the attendance store and the services reading from it."""
    global _attendance_store

    from routers.stats import set_stats_service
    from routers.achievements import set_achievement_service

    _attendance_store = await get_attendance_store(
        config.POSTGRES_URL,
        min_size=config.DB_POOL_MIN_SIZE,
        max_size=config.DB_POOL_MAX_SIZE,
    )
    await _attendance_store.sync_achievements(ACHIEVEMENTS)
    logger.info("Attendance store initialized")

    set_stats_service(StatsService(
        _attendance_store,
        top_songs_limit=config.stats.TOP_SONGS_LIMIT,
        recent_events_limit=config.stats.RECENT_EVENTS_LIMIT,
        year_review_top_n=config.stats.YEAR_REVIEW_TOP_N,
    ))
    set_achievement_service(AchievementService(_attendance_store, ACHIEVEMENTS))
    logger.info("Stats and achievement services initialized")


async def _shutdown_services():
    """Gracefully shut down all services."""
    global _attendance_store

    from routers.stats import set_stats_service
    from routers.achievements import set_achievement_service

    set_stats_service(None)
    set_achievement_service(None)

    if _attendance_store:
        await close_attendance_store()
        _attendance_store = None
        logger.info("Attendance store closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for async service initialization."""
    if config.POSTGRES_URL:
        try:
            await _init_database_services()
        except Exception as e:
            logger.error(f"Failed to initialize services: {e}")
            raise
    else:
        logger.warning("POSTGRES_URL not configured - stats endpoints will not work")

    # Set up health check dependencies
    from routers.health import set_health_dependencies
    set_health_dependencies(db_pool=_attendance_store.pool if _attendance_store else None)

    logger.info(f"Stats server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _shutdown_services()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Event Tracker Stats",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Middleware Setup
# =============================================================================

# Request context middleware (binds request/user IDs for logging)
from middleware.request_id import RequestContextMiddleware
app.add_middleware(RequestContextMiddleware)


# =============================================================================
# Routers
# =============================================================================

from routers.stats import router as stats_router
from routers.achievements import router as achievements_router
from routers.health import router as health_router
app.include_router(stats_router)
app.include_router(achievements_router)
app.include_router(health_router)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting stats server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
