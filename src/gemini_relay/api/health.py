"""Liveness endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from .deps import AppConfigDep
from .models import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(config: AppConfigDep) -> HealthResponse:
    """Report that the process is up.  Does not touch Gemini or the store."""
    return HealthResponse(
        port=config.port,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
