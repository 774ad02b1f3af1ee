"""
Health Check Routes - FastAPI
=============================

Provides health, status, and readiness endpoints.
"""

import logging
from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "funcaptcha-solver"
SERVICE_VERSION = "1.0.0"


@router.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/status")
async def status(request: Request):
    """
    Detailed status endpoint.

    Returns information about:
    - Predictor slots (empty / building / ready / inactive)
    - Fallback provider, if configured
    - Submit limit
    """
    try:
        orchestrator = request.app.state.orchestrator
        fallback = orchestrator.fallback

        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "limit": orchestrator.limit,
            "fallback": fallback.provider.value if fallback is not None else None,
            "builds": orchestrator.registry.build_count,
            "predictors": orchestrator.registry.snapshot(),
        }

    except Exception as e:
        logger.error(f"Error getting status: {e}")
        return {
            "status": "degraded",
            "error": str(e)
        }


@router.get("/ready")
async def readiness(request: Request):
    """
    Kubernetes readiness probe.

    Ready once startup has wired the orchestrator.
    """
    if getattr(request.app.state, "orchestrator", None) is None:
        return {"ready": False, "reason": "Solver not initialized"}
    return {"ready": True}


@router.get("/live")
async def liveness():
    """Kubernetes liveness probe"""
    return {"alive": True}
