"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app handle requests?)
- /metrics - Application metrics for monitoring
"""

import json
import logging
from collections import Counter
from datetime import datetime, timezone

from fastapi import APIRouter, Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_db_pool = None
_room_manager = None


def set_health_dependencies(
    db_pool=None,
    room_manager=None,
):
    """Set dependencies for health checks."""
    global _db_pool, _room_manager
    _db_pool = db_pool
    _room_manager = room_manager


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

    Checks connectivity to the database when one is configured.
    Returns 503 if it is unavailable.
    """
    checks = {}
    overall_healthy = True

    if _db_pool is not None:
        try:
            async with _db_pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            checks["database"] = {"status": "ok"}
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            checks["database"] = {"status": "error", "message": str(e)}
            overall_healthy = False
    else:
        checks["database"] = {"status": "not_configured"}

    status_code = 200 if overall_healthy else 503
    return Response(
        content=json.dumps({
            "status": "ok" if overall_healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=status_code,
        media_type="application/json",
    )


@router.get("/metrics")
async def metrics():
    """
    Expose application metrics for monitoring.

    Room counts, seated and connected players, and games by status.
    """
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = _room_manager.rooms.values()
        by_status = Counter(room.status.value for room in rooms)
        metrics_data.update({
            "active_rooms": len(_room_manager.rooms),
            "total_players": sum(len(room.players) for room in rooms),
            "connected_players": sum(room.connected_count() for room in rooms),
            "games_by_status": dict(by_status),
        })

    return metrics_data
