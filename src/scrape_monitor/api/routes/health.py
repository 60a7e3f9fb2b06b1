"""Health check endpoints."""
from fastapi import APIRouter, Depends
from typing import Dict, Any
import time

from ...core.config import settings
from ...services.dashboard import Dashboard
from ..dependencies import get_dashboard


router = APIRouter()


@router.get("/health", summary="Basic health check")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION,
        "service": settings.APP_NAME
    }


@router.get("/health/ready", summary="Readiness check")
async def readiness_check(dashboard: Dashboard = Depends(get_dashboard)) -> Dict[str, Any]:
    """Ready once the initial last-refresh fetch has settled."""
    orchestrator = dashboard.orchestrator
    return {
        "status": "loading" if orchestrator.is_loading else "ready",
        "timestamp": time.time(),
        "backend": settings.BACKEND_BASE_URL,
        "polling": dashboard.session.is_polling
    }
