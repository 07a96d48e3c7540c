"""Monitoring endpoints for the notification core.

- /api/monitoring/email - Mail transport configuration and queue depth
- /api/monitoring/metrics - Uptime, request stats and telemetry counters
- /api/monitoring/stats - Request stats only
- /api/monitoring/metrics/clear - Drop collected request metrics (admin)
- /api/monitoring/system - Interpreter and process information
"""

from __future__ import annotations

import os
import platform
import sys
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request

from officehub.api.middleware.user_auth import AuthenticatedUser, require_admin
from officehub.api.models import EmailMonitoringResponse
from officehub.config import ENV
from officehub.observability.logging import get_logger
from officehub.observability.metrics import MetricsCollector, format_uptime
from officehub.observability.telemetry import snapshot_counters

router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])
logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def get_metrics_collector(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def _uptime(collector: MetricsCollector) -> dict[str, Any]:
    seconds = collector.uptime_seconds()
    return {"seconds": seconds, "formatted": format_uptime(seconds)}


@router.get("/email", response_model=EmailMonitoringResponse)
async def email_status(request: Request) -> EmailMonitoringResponse:
    """Transport configuration and current queue depth. Never contacts the mail server."""
    configured = request.app.state.transport.configured
    return EmailMonitoringResponse(
        status="ok" if configured else "not_configured",
        configured=configured,
        queue_depth=request.app.state.email_queue.pending,
        timestamp=_now(),
    )


@router.get("/metrics")
async def metrics(collector: MetricsCollector = Depends(get_metrics_collector)) -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": _now(),
        "uptime": _uptime(collector),
        "metrics": collector.stats(),
        "counters": snapshot_counters(),
    }


@router.get("/stats")
async def stats(collector: MetricsCollector = Depends(get_metrics_collector)) -> dict[str, Any]:
    return collector.stats()


@router.post("/metrics/clear")
async def clear_metrics(
    admin: AuthenticatedUser = Depends(require_admin),
    collector: MetricsCollector = Depends(get_metrics_collector),
) -> dict[str, Any]:
    cleared = collector.clear()
    logger.info("Request metrics cleared by %s (%d entries)", admin.id, cleared)
    return {"message": "Metrics cleared successfully", "cleared": cleared}


@router.get("/system")
async def system(collector: MetricsCollector = Depends(get_metrics_collector)) -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": _now(),
        "python": {
            "version": platform.python_version(),
            "implementation": platform.python_implementation(),
            "platform": sys.platform,
            "arch": platform.machine(),
        },
        "process": {"pid": os.getpid()},
        "uptime": _uptime(collector),
        "environment": ENV,
    }
