"""Health check endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from checkoutflow.infrastructure.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="checkoutflow",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check() -> dict[str, str]:
    """Check if service is ready to accept requests.

    Collaborators are reached lazily per checkout, so readiness does not
    probe them.
    """
    return {"status": "ready"}
