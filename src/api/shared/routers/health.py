"""
Health Check Endpoints

Provides health, readiness, and liveness endpoints for container orchestration.
"""

from datetime import datetime, timezone
from typing import Dict, Any
import os

from fastapi import APIRouter, Depends, Response

from ....core.config import GatewaySettings
from ..dependencies import get_settings

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check.

    Returns 200 if the service is running.
    """
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": os.getenv("APP_VERSION", "1.0.0")
    }


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe.

    Returns 200 if the process is alive.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    settings: GatewaySettings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Kubernetes readiness probe.

    Returns 503 while required backend endpoints are not configured.
    Warnings are reported but do not fail the probe.
    """
    issues = settings.validate()
    errors = [issue for issue in issues if issue.startswith("ERROR")]
    warnings = [issue for issue in issues if issue.startswith("WARNING")]

    ready = not errors
    if not ready:
        response.status_code = 503

    return {
        "status": "ready" if ready else "not_ready",
        "checks": {
            "configuration": "healthy" if ready else "unhealthy",
        },
        "errors": errors,
        "warnings": warnings,
        "timestamp": _now()
    }
