"""Allergen highlighting endpoints.

Provides:
- POST /allergens/highlight for segmenting one ingredient list
- POST /allergens/highlight/batch for segmenting several lists at once
- GET /allergens/terms for inspecting the terms in force
- POST /allergens/terms/expire for forcing a catalog refresh on next use
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_allergen_highlighter
from app.core.config import Settings, get_settings
from app.core.exceptions import BatchTooLargeException
from app.observability.logging import get_logger
from app.schemas.allergen import (
    BatchHighlightRequest,
    BatchHighlightResponse,
    HighlightedRun,
    HighlightRequest,
    HighlightResponse,
    TermSetResponse,
)
from app.services.allergen.segmenter import Run  # noqa: TC001
from app.services.allergen.service import AllergenHighlighter  # noqa: TC001


logger = get_logger(__name__)

router = APIRouter(prefix="/allergens", tags=["Allergens"])


def _to_response(runs: list[Run]) -> HighlightResponse:
    return HighlightResponse(
        runs=[HighlightedRun(text=r.text, is_allergen=r.is_allergen) for r in runs]
    )


@router.post(
    "/highlight",
    response_model=HighlightResponse,
    summary="Highlight allergens in an ingredient list",
    description=(
        "Splits the text into runs covering it exactly once and flags the runs "
        "that name a regulated allergen (whole word, case-insensitive). When the "
        "catalog is unreachable, stale or built-in terms are used instead."
    ),
)
async def highlight_allergens(
    body: HighlightRequest,
    highlighter: Annotated[AllergenHighlighter, Depends(get_allergen_highlighter)],
) -> HighlightResponse:
    """Segment a single ingredient list."""
    runs = await highlighter.highlight(body.text)
    return _to_response(runs)


@router.post(
    "/highlight/batch",
    response_model=BatchHighlightResponse,
    summary="Highlight allergens in several ingredient lists",
    description=(
        "Segments every text against the same term set. Results are returned "
        "in request order."
    ),
    responses={
        400: {"description": "Too many texts in one batch"},
    },
)
async def highlight_allergens_batch(
    body: BatchHighlightRequest,
    highlighter: Annotated[AllergenHighlighter, Depends(get_allergen_highlighter)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> BatchHighlightResponse:
    """Segment several ingredient lists concurrently."""
    limit = settings.highlighting.max_batch_size
    if len(body.texts) > limit:
        raise BatchTooLargeException(len(body.texts), limit)

    results = await highlighter.highlight_many(body.texts)
    return BatchHighlightResponse(results=[_to_response(runs) for runs in results])


@router.get(
    "/terms",
    response_model=TermSetResponse,
    summary="List the allergen terms in force",
    description=(
        "Returns the terms currently used for highlighting and the tier serving "
        "them: cache, refreshed, stale or fallback."
    ),
)
async def get_allergen_terms(
    highlighter: Annotated[AllergenHighlighter, Depends(get_allergen_highlighter)],
) -> TermSetResponse:
    """Return the current term set, refreshing it if stale."""
    lookup = await highlighter.terms()
    return TermSetResponse(
        terms=sorted(lookup.terms),
        count=len(lookup.terms),
        source=lookup.source,
        fetched_at=lookup.refreshed_at,
    )


@router.post(
    "/terms/expire",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Expire the cached allergen terms",
    description=(
        "Marks the cached terms stale so the next request reloads the catalog. "
        "The current terms keep being served if that reload fails."
    ),
)
async def expire_allergen_terms(
    highlighter: Annotated[AllergenHighlighter, Depends(get_allergen_highlighter)],
) -> Response:
    """Expire the term cache."""
    highlighter.cache.expire()
    logger.info("Allergen term cache expired on request")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
