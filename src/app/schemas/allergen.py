"""Allergen catalog and highlighting schemas."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from app.schemas.base import APIRequest, APIResponse, DownstreamResponse


class TermSource(StrEnum):
    """Which tier served a term set lookup."""

    CACHE = "cache"  # Fresh cached set, no I/O
    REFRESHED = "refreshed"  # Fetched from the catalog during this lookup
    STALE = "stale"  # Refresh failed, previous set served
    FALLBACK = "fallback"  # Refresh failed and nothing was ever cached


class AllergenCatalogEntry(DownstreamResponse):
    """One regulatory allergen category as stored in the catalog."""

    number: int = Field(..., description="Numeric category identifier")
    category_name: str = Field(default="", description="Category display name")
    official_ingredients: str | None = Field(
        default=None,
        description="Comma-separated official terms for the category",
    )
    common_examples: str | None = Field(
        default=None,
        description="Comma-separated common example terms for the category",
    )


class HighlightRequest(APIRequest):
    """Single text to segment."""

    text: str = Field(..., description="Free-text ingredient list")


class BatchHighlightRequest(APIRequest):
    """Several texts to segment against the same term set."""

    texts: list[str] = Field(..., description="Free-text ingredient lists")


class HighlightedRun(APIResponse):
    """Contiguous span of the input tagged as allergen or not."""

    text: str
    is_allergen: bool


class HighlightResponse(APIResponse):
    """Runs covering the input text exactly once, in order."""

    runs: list[HighlightedRun] = Field(default_factory=list)


class BatchHighlightResponse(APIResponse):
    """One result per input text, in request order."""

    results: list[HighlightResponse] = Field(default_factory=list)


class TermSetResponse(APIResponse):
    """Currently served allergen terms and where they came from."""

    terms: list[str] = Field(default_factory=list)
    count: int = 0
    source: TermSource
    fetched_at: datetime | None = Field(
        default=None,
        description="When the cached set was fetched (absent for the fallback)",
    )
