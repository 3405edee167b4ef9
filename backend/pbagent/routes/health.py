"""Health check endpoint."""

from fastapi import APIRouter

from pbagent.config import settings
from pbagent.models import HealthResponse

router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    ready = settings.anthropic_configured and settings.productboard_configured
    return HealthResponse(
        status="ok" if ready else "degraded",
        anthropic_configured=settings.anthropic_configured,
        productboard_configured=settings.productboard_configured,
        slack_configured=settings.slack_configured,
    )
