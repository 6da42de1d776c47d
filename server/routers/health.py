"""
Health check endpoints for deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the table accepting connections?)
- /metrics - Table metrics for monitoring
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Table reference (set during app startup)
_table = None


def set_health_dependencies(table=None):
    """Set dependencies for health checks."""
    global _table
    _table = table


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
    Readiness check - can the app handle connections?

    Returns 503 until the table has been created during startup.
    """
    ready = _table is not None
    checks = {"table": {"status": "ok" if ready else "not_ready"}}

    return Response(
        content=json.dumps({
            "status": "ok" if ready else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=200 if ready else 503,
        media_type="application/json",
    )


@router.get("/metrics")
async def metrics():
    """
    Expose table metrics for monitoring.

    Counts only; never card data.
    """
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _table is not None:
        match = _table.match
        metrics_data.update({
            "match_id": match.match_id,
            "match_status": match.status.value,
            "participants": len(match.participants),
            "connections": len(_table.seats),
            "draw_pile_remaining": len(match.draw_pile),
        })

    return metrics_data
