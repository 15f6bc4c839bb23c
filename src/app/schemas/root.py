"""Root endpoint response schema."""

from __future__ import annotations

from pydantic import Field

from app.schemas.base import APIResponse


class RootResponse(APIResponse):
    """Basic service information with links for discovery."""

    service: str = Field(
        ...,
        description="Service name",
        examples=["Allergen Highlighter Service"],
    )
    version: str = Field(..., description="Service version", examples=["0.1.0"])
    status: str = Field(
        ...,
        description="Service operational status",
        examples=["operational"],
    )
    docs: str = Field(
        ...,
        description="API documentation URL or status",
        examples=["/api/v1/lot-register/docs"],
    )
    health: str = Field(
        ...,
        description="Health check endpoint URL",
        examples=["/api/v1/lot-register/health"],
    )
    highlight: str = Field(
        ...,
        description="Allergen highlighting endpoint URL",
        examples=["/api/v1/lot-register/allergens/highlight"],
    )
