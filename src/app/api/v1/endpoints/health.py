"""Health check endpoints.

Provides liveness and readiness checks for Kubernetes and load balancers.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from app.core.config import CatalogBackend, Settings, get_settings
from app.database.connection import check_database_health


if TYPE_CHECKING:
    from app.services.allergen.service import AllergenHighlighter


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Health status", examples=["healthy"])
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Current server timestamp",
    )
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")


class ReadinessResponse(HealthResponse):
    """Readiness check response with dependency status."""

    dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="Status of external dependencies",
    )


def _term_cache_status(highlighter: AllergenHighlighter | None) -> str:
    """Describe the term cache: not_initialized, empty, fallback, stale or fresh.

    ``empty`` means no lookup has run yet; ``fallback`` means one did and the
    catalog could not be read.
    """
    if highlighter is None:
        return "not_initialized"
    cache = highlighter.cache
    state = cache.snapshot()
    if state is None:
        return "fallback" if cache.serving_fallback else "empty"
    return "stale" if cache.is_stale(state) else "fresh"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Check if the service is alive without touching dependencies."""
    return HealthResponse(
        status="healthy",
        version=settings.app.version,
        environment=settings.APP_ENV,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description=(
        "Reports the allergen term cache and catalog database state. Highlighting "
        "degrades instead of failing, so only a missing highlighter is not ready."
    ),
)
async def readiness_check(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ReadinessResponse:
    """Check if the service is ready to handle requests."""
    dependencies: dict[str, str] = {}

    highlighter = getattr(request.app.state, "allergen_highlighter", None)
    dependencies["allergen_terms"] = _term_cache_status(highlighter)

    if CatalogBackend(settings.catalog.backend) == CatalogBackend.POSTGRES:
        dependencies.update(await check_database_health())

    return ReadinessResponse(
        status="degraded" if highlighter is None else "ready",
        version=settings.app.version,
        environment=settings.APP_ENV,
        dependencies=dependencies,
    )
