# WORKFLOW: Health check endpoints for monitoring and operational status.
# Used by: Load balancers, monitoring systems, operational dashboards
# Endpoints:
# 1. /healthz - Basic health check (always returns healthy)
# 2. /readyz - Readiness check: oracle endpoint, API key and models configured
# 3. /livez - Liveness check for Kubernetes probes
#
# Readiness flow: Readiness check -> Oracle configuration -> Ready/Not ready
# A not-ready service still answers extraction requests with empty results.

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/healthz")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        Health status of the API
    """
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.version,
        "environment": settings.environment,
    }


@router.get("/readyz")
async def readiness_check():
    """
    Readiness check endpoint.

    The service is ready when the oracle endpoint, the OCR and extraction
    models and (where required) the API key are configured. No network
    call is made.

    Returns:
        Readiness status with detailed checks
    """
    checks = {
        "oracle_endpoint": bool(settings.oracle_url),
        "oracle_credentials": bool(settings.oracle_api_key) or not settings.oracle_requires_api_key,
        "models": bool(settings.ocr_model) and bool(settings.extraction_model),
    }

    is_ready = settings.oracle_configured
    if not is_ready:
        logger.warning(f"Readiness check failed: {checks}")

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": _now(),
        "checks": checks,
        "version": settings.version,
    }


@router.get("/livez")
async def liveness_check():
    """Liveness check used by Kubernetes liveness probes."""
    return {
        "status": "alive",
        "timestamp": _now(),
    }
