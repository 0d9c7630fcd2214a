"""Health-check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from provisioner import __version__
from provisioner.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def service_health(request: Request) -> HealthResponse:
    """Basic liveness probe (no auth required)."""
    sink = getattr(request.app.state, "debug_sink", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        debug_log=sink.path if sink is not None and sink.is_file else None,
    )
