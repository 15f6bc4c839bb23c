"""Allergen highlighting service.

The single entry point used by callers: fetch the current terms from the
catalog cache, then segment the text against them. Never raises.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

from app.observability.logging import get_logger
from app.services.allergen.constants import DEFAULT_MAX_TEXT_LENGTH
from app.services.allergen.segmenter import Run, segment


if TYPE_CHECKING:
    from app.services.allergen.catalog import TermCatalogCache, TermLookup

logger = get_logger(__name__)


class AllergenHighlighter:
    """Highlight regulated allergens in free-text ingredient lists.

    Orchestrates:
    1. Term lookup through the catalog cache (fresh, stale or fallback)
    2. Whole-word, case-insensitive segmentation of the input
    3. Degradation to a single plain run when matching cannot proceed
    """

    def __init__(
        self,
        cache: TermCatalogCache,
        *,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    ) -> None:
        """Initialize the highlighter.

        Args:
            cache: Term catalog cache supplying the allergen terms.
            max_text_length: Longer inputs are returned as one plain run.
        """
        self._cache = cache
        self._max_text_length = max_text_length

    @property
    def cache(self) -> TermCatalogCache:
        """The term catalog cache backing this highlighter."""
        return self._cache

    async def initialize(self, *, warm: bool = False) -> None:
        """Prepare the catalog source and optionally prefetch the terms."""
        await self._cache.source.initialize()
        if warm:
            lookup = await self._cache.lookup()
            logger.info(
                "Allergen terms warmed",
                source=lookup.source.value,
                terms=len(lookup.terms),
            )
        logger.info("AllergenHighlighter initialized")

    async def shutdown(self) -> None:
        """Release the catalog source's resources."""
        await self._cache.source.shutdown()
        logger.info("AllergenHighlighter shutdown")

    async def terms(self) -> TermLookup:
        """Return the terms currently in force and the tier serving them."""
        return await self._cache.lookup()

    async def highlight(self, text: object) -> list[Run]:
        """Split ``text`` into runs, flagging those that name an allergen.

        Args:
            text: Ingredient list. ``None`` yields no runs; other non-string
                values are highlighted as their ``str()`` form.

        Returns:
            Runs whose concatenated text equals the input.
        """
        if text is None:
            return []
        if not isinstance(text, str):
            try:
                text = str(text)
            except Exception:
                logger.exception(
                    "Text could not be converted, returning no runs",
                    type=type(text).__name__,
                )
                return []
        if not text:
            return []

        if len(text) > self._max_text_length:
            logger.warning(
                "Text too long to highlight, returning it unmarked",
                length=len(text),
                limit=self._max_text_length,
            )
            return [Run(text, is_allergen=False)]

        terms = await self._cache.get_terms()
        try:
            return segment(text, terms)
        except Exception:
            logger.exception("Allergen matching failed", terms=len(terms))
            return [Run(text, is_allergen=False)]

    async def highlight_many(self, texts: Iterable[object]) -> list[list[Run]]:
        """Highlight several texts concurrently, preserving input order.

        Every text shares the same catalog refresh when the cache is stale.
        """
        return list(await asyncio.gather(*(self.highlight(t) for t in texts)))
