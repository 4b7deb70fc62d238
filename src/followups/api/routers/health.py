"""
Health Check Endpoints

Liveness and readiness probes.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from ... import __version__
from ..dependencies import Services, get_services

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Returns 200 if the service is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(response: Response, services: Services = Depends(get_services)) -> Dict[str, Any]:
    """Returns 200 if the record store is readable, 503 otherwise."""
    checks = {}
    try:
        services.store.ping()
        checks["store"] = "healthy"
    except Exception as e:
        checks["store"] = f"unhealthy: {str(e)[:100]}"
        response.status_code = 503

    return {
        "status": "ready" if response.status_code != 503 else "not_ready",
        "checks": checks,
    }
