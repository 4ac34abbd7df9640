"""
Notifications API entry point.

Serves the notification inbox, study reminder management and the live
notification socket, and hosts the notification scheduler for the
lifetime of the process.

Run with:
    uvicorn trafficrules.main:app
"""
import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trafficrules.core.config import settings
from trafficrules.db.database import check_db_connection
from trafficrules.db.redis import check_redis_connection, close_redis_pool, get_redis_pool
from trafficrules.scheduler import get_scheduler
from trafficrules.services.websocket_manager import shutdown_connection_manager
from trafficrules.api.v1.router import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def _dependency_status() -> Dict[str, bool]:
    """Reachability of the backing services plus scheduler state."""
    return {
        "database": await check_db_connection(),
        "redis": await check_redis_connection(),
        "scheduler": get_scheduler().is_running,
    }


# ============================================================
# Lifespan
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: open the Redis pool, report dependency health, start the scheduler.
    Shutdown: stop the scheduler (letting running ticks finish), then
    close sockets and Redis.

    A missing database or Redis is logged, not fatal: the API still
    serves, and live delivery degrades to this instance only.
    """
    logger.info(f"Starting {settings.PROJECT_NAME} (debug={settings.DEBUG})")

    get_redis_pool()
    status = await _dependency_status()
    for name in ("database", "redis"):
        if status[name]:
            logger.info(f"{name} reachable")
        else:
            logger.warning(f"{name} unreachable at startup")

    scheduler = get_scheduler()
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("SCHEDULER_ENABLED is off; reminders will only run when triggered manually")

    yield

    logger.info(f"Stopping {settings.PROJECT_NAME}")
    await scheduler.shutdown()
    await shutdown_connection_manager()
    await close_redis_pool()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Notifications for the driving exam practice app

    - Notification inbox and preferences
    - Weekly study reminders
    - Live delivery over WebSocket, device push over FCM
    - Weekly exam activity reports
    """,
    version=VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ----------------------------------------------------
# Health
# ----------------------------------------------------
@app.get("/", tags=["Health"])
async def root():
    return {"name": settings.PROJECT_NAME, "version": VERSION}


@app.get("/health", tags=["Health"])
async def health_check():
    """
    "healthy" when the database and Redis answer and, if enabled,
    the scheduler is running; "degraded" otherwise.
    """
    try:
        status = await _dependency_status()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})

    scheduler_ok = status["scheduler"] or not settings.SCHEDULER_ENABLED
    healthy = status["database"] and status["redis"] and scheduler_ok

    return {
        "status": "healthy" if healthy else "degraded",
        "database": "connected" if status["database"] else "disconnected",
        "redis": "connected" if status["redis"] else "disconnected",
        "scheduler": "running" if status["scheduler"] else "stopped",
    }


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
