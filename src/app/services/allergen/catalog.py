"""Term catalog cache.

Serves the current allergen TermSet with three tiers:

1. Fresh cache: returned without I/O while younger than the TTL
2. Stale cache: returned when a refresh fails after an earlier success
3. Built-in fallback: returned when a refresh fails and nothing was ever cached

Refreshes are single-flight: concurrent lookups during a stale window share
one fetch and all observe its outcome.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from app.observability.logging import get_logger
from app.observability.metrics import CATALOG_LOOKUPS, CATALOG_REFRESHES
from app.schemas.allergen import TermSource
from app.services.allergen.constants import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_TERM_TTL_SECONDS,
    FALLBACK_TERMS,
    MIN_TERM_LENGTH,
    TERM_SEPARATOR,
)
from app.services.allergen.exceptions import CatalogTimeoutError


if TYPE_CHECKING:
    from app.schemas.allergen import AllergenCatalogEntry
    from app.services.allergen.protocol import CatalogSource

logger = get_logger(__name__)

TermSet = frozenset[str]


def split_terms(field: str | None) -> Iterator[str]:
    """Yield the lowercase, trimmed synonyms of one comma-separated field."""
    if not field:
        return
    for raw in field.split(TERM_SEPARATOR):
        term = raw.strip().lower()
        if term:
            yield term


def build_term_set(
    entries: Iterable[AllergenCatalogEntry],
    min_length: int = MIN_TERM_LENGTH,
) -> TermSet:
    """Collect official and common-example terms from every catalog entry.

    Terms shorter than ``min_length`` are dropped (stray letters, fragments
    of punctuation).
    """
    terms: set[str] = set()
    for entry in entries:
        for field in (entry.official_ingredients, entry.common_examples):
            terms.update(t for t in split_terms(field) if len(t) >= min_length)
    return frozenset(terms)


@dataclass(frozen=True, slots=True)
class CacheState:
    """A successfully fetched term set.

    ``fetched_at`` is a reading of the cache clock and drives staleness;
    ``refreshed_at`` is the wall-clock time for reporting.
    """

    terms: TermSet
    fetched_at: float
    refreshed_at: datetime


@dataclass(frozen=True, slots=True)
class TermLookup:
    """Outcome of a lookup: the terms served and the tier that served them."""

    terms: TermSet
    source: TermSource
    refreshed_at: datetime | None = None


class TermCatalogCache:
    """In-process cache of allergen terms backed by a catalog source.

    Example:
        ```python
        cache = TermCatalogCache(AllergenCatalogRepository(), ttl_seconds=300)
        terms = await cache.get_terms()
        ```
    """

    def __init__(
        self,
        source: CatalogSource,
        *,
        ttl_seconds: float = DEFAULT_TERM_TTL_SECONDS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        min_term_length: int = MIN_TERM_LENGTH,
        fallback_terms: Iterable[str] = FALLBACK_TERMS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            source: Catalog store to refresh from.
            ttl_seconds: Age at which a cached set becomes stale.
            fetch_timeout: Upper bound for one catalog fetch, in seconds.
            min_term_length: Shortest term kept from catalog fields.
            fallback_terms: Terms served while the cache was never populated.
            clock: Monotonic time source (injectable for tests).
        """
        self._source = source
        self._ttl = ttl_seconds
        self._fetch_timeout = fetch_timeout
        self._min_term_length = min_term_length
        self._fallback = frozenset(fallback_terms)
        self._clock = clock
        self._state: CacheState | None = None
        self._inflight: asyncio.Task[TermLookup] | None = None
        self._fallback_served = False

    @property
    def source(self) -> CatalogSource:
        """Catalog store this cache refreshes from."""
        return self._source

    @property
    def ttl_seconds(self) -> float:
        """Age at which the cached set is considered stale."""
        return self._ttl

    @property
    def fallback_terms(self) -> TermSet:
        """Terms served when the catalog has never been reachable."""
        return self._fallback

    @property
    def is_populated(self) -> bool:
        """True once a fetch has succeeded."""
        return self._state is not None

    @property
    def serving_fallback(self) -> bool:
        """True when a refresh failed and nothing was ever cached."""
        return self._state is None and self._fallback_served

    @property
    def refresh_in_progress(self) -> bool:
        """True while a catalog fetch is in flight."""
        return self._inflight is not None and not self._inflight.done()

    def snapshot(self) -> CacheState | None:
        """Return the current state without triggering a refresh."""
        return self._state

    def is_stale(self, state: CacheState) -> bool:
        """Check whether ``state`` has reached the TTL."""
        return self._clock() - state.fetched_at >= self._ttl

    def expire(self) -> None:
        """Mark the cached set stale so the next lookup refreshes it.

        The terms are kept and still served if that refresh fails.
        """
        state = self._state
        if state is not None:
            self._state = dataclasses.replace(state, fetched_at=float("-inf"))
            logger.info("Allergen term cache expired", terms=len(state.terms))

    async def get_terms(self) -> TermSet:
        """Return the current term set. Never raises."""
        return (await self.lookup()).terms

    async def lookup(self) -> TermLookup:
        """Return the current term set along with the tier that served it."""
        state = self._state
        if state is not None and not self.is_stale(state):
            CATALOG_LOOKUPS.labels(source=TermSource.CACHE.value).inc()
            return TermLookup(state.terms, TermSource.CACHE, state.refreshed_at)

        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._refresh())
            self._inflight = task
        else:
            logger.debug("Joining in-flight allergen catalog refresh")

        # Shielded so one cancelled caller does not cancel the shared refresh
        result = await asyncio.shield(task)
        CATALOG_LOOKUPS.labels(source=result.source.value).inc()
        return result

    async def _refresh(self) -> TermLookup:
        """Fetch the catalog once and settle the lookup tier."""
        try:
            try:
                entries = await asyncio.wait_for(
                    self._source.fetch_all(),
                    timeout=self._fetch_timeout,
                )
                terms = build_term_set(entries, self._min_term_length)
            except Exception as e:
                return self._degrade(e)

            state = CacheState(
                terms=terms,
                fetched_at=self._clock(),
                refreshed_at=datetime.now(UTC),
            )
            self._state = state
            CATALOG_REFRESHES.labels(outcome="success").inc()
            logger.info(
                "Allergen term catalog refreshed",
                entries=len(entries),
                terms=len(terms),
            )
            return TermLookup(terms, TermSource.REFRESHED, state.refreshed_at)
        finally:
            self._inflight = None

    def _degrade(self, error: Exception) -> TermLookup:
        """Pick the stale set or the fallback after a failed fetch."""
        timed_out = isinstance(error, (TimeoutError, CatalogTimeoutError))
        CATALOG_REFRESHES.labels(outcome="timeout" if timed_out else "error").inc()

        state = self._state
        if state is not None:
            logger.warning(
                "Allergen catalog refresh failed, serving stale terms",
                error=repr(error),
                terms=len(state.terms),
            )
            return TermLookup(state.terms, TermSource.STALE, state.refreshed_at)

        self._fallback_served = True
        logger.warning(
            "Allergen catalog refresh failed, serving built-in fallback terms",
            error=repr(error),
            terms=len(self._fallback),
        )
        return TermLookup(self._fallback, TermSource.FALLBACK)
