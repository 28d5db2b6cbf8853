# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: liveness, readiness and Prometheus scrape endpoints.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from schedule_sync.core.config import settings
from schedule_sync.core.dependencies import get_schedule_repo
from schedule_sync.repositories.schedule_repository import ScheduleRepository

router = APIRouter(tags=["System"])

_STARTED_AT = time.monotonic()


@router.get("/health")
def health_check(schedule_repo: ScheduleRepository = Depends(get_schedule_repo)):
    """Liveness: the process answers and reports what it tracks."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
        "managed_schedules": schedule_repo.count(),
    }


@router.get("/health/ready")
def readiness_check(response: Response):
    """Ready once a PagerDuty token is configured; 503 otherwise."""
    configured = bool(settings.PAGERDUTY_TOKEN)
    if not configured:
        response.status_code = 503
    return {
        "status": "ready" if configured else "not_ready",
        "service": settings.SERVICE_NAME,
        "pagerduty_api_url": settings.PAGERDUTY_API_URL,
        "pagerduty_configured": configured,
    }


@router.get("/metrics")
def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
