"""Pydantic schemas for request/response validation."""

from app.schemas.allergen import (
    AllergenCatalogEntry,
    BatchHighlightRequest,
    BatchHighlightResponse,
    HighlightedRun,
    HighlightRequest,
    HighlightResponse,
    TermSetResponse,
    TermSource,
)
from app.schemas.base import APIRequest, APIResponse, DownstreamResponse
from app.schemas.root import RootResponse


__all__ = [
    "APIRequest",
    "APIResponse",
    "AllergenCatalogEntry",
    "BatchHighlightRequest",
    "BatchHighlightResponse",
    "DownstreamResponse",
    "HighlightRequest",
    "HighlightResponse",
    "HighlightedRun",
    "RootResponse",
    "TermSetResponse",
    "TermSource",
]
