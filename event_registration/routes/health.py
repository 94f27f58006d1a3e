import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from loguru import logger

from event_registration.core.clock import utcnow
from event_registration.core.config import Settings, get_app_settings
from event_registration.database.db import Database, get_database

router = APIRouter(tags=["health"])


def get_redis_client(url: str):
    """Get Redis client for the broker check."""
    return redis.from_url(url, decode_responses=True, socket_connect_timeout=2)


def _check_database(database: Database) -> str:
    try:
        database.ping()
    except Exception:
        logger.exception("Health check: database unreachable")
        return "unavailable"
    return "ok"


def _check_broker(url: str) -> str:
    try:
        get_redis_client(url).ping()
    except redis.exceptions.RedisError as exc:  # type: ignore
        logger.warning("Health check: broker unreachable ({})", exc.__class__.__name__)
        return "unavailable"
    return "ok"


@router.get("/health")
def health(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    checks = {
        "database": _check_database(database),
        "broker": _check_broker(settings.redis_url),
    }
    healthy = checks["database"] == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "OK" if healthy else "UNAVAILABLE",
            "message": "Server is running" if healthy else "Database is unreachable",
            "timestamp": utcnow().isoformat(),
            "checks": checks,
        },
    )


@router.get("/api/v1")
def api_info(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "success",
        "message": "Event Management API v1",
        "version": settings.version,
        "endpoints": {
            "POST /api/events": "Create new event",
            "GET /api/events/upcoming": "List upcoming events",
            "GET /api/events/{id}": "Get event details",
            "GET /api/events/{id}/stats": "Get event statistics",
            "POST /api/events/{id}/register": "Register for event",
            "DELETE /api/events/{id}/register": "Cancel registration",
            "POST /api/users": "Create user",
            "GET /api/users": "List users",
        },
    }
