"""
Health Check Routes
"""

from typing import Any

from fastapi import APIRouter, Depends

from thinkrelay import __version__
from thinkrelay.api.dependencies import get_components

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check."""
    return {"status": "healthy", "version": __version__}


@router.get("/health/ready")
async def readiness_check(
    components: dict[str, Any] = Depends(get_components),
) -> dict[str, Any]:
    """Ready once the adapter factory is wired."""
    ready = "adapter_factory" in components
    return {"status": "ready" if ready else "starting"}


@router.get("/health/live")
async def liveness_check() -> dict[str, Any]:
    """Liveness check for Kubernetes."""
    return {"status": "alive"}
