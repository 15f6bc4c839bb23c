"""Unit tests for the term catalog cache.

Tests cover:
- Term set construction from catalog entries
- Fresh, refreshed, stale and fallback tiers
- TTL expiry and manual expiry
- Single-flight refreshes under concurrency
- Fetch timeouts and caller cancellation
"""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from app.schemas.allergen import AllergenCatalogEntry, TermSource
from app.services.allergen.catalog import (
    TermCatalogCache,
    build_term_set,
    split_terms,
)
from app.services.allergen.constants import FALLBACK_TERMS
from app.services.allergen.exceptions import (
    CatalogTimeoutError,
    CatalogUnavailableError,
)
from tests.factories.allergen import AllergenCatalogEntryFactory
from tests.fixtures.catalog import FakeCatalogSource, FakeClock


pytestmark = pytest.mark.unit

EXPECTED_TERMS = frozenset(
    {
        "grano",
        "segale",
        "orzo",
        "farina di grano",
        "pane",
        "uova",
        "uovo",
        "albume",
        "latte",
        "lattosio",
    }
)


def _refreshes(outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "allergen_highlighter_catalog_refreshes_total", {"outcome": outcome}
    )
    return value or 0.0


@pytest.fixture
def cache(fake_source: FakeCatalogSource, fake_clock: FakeClock) -> TermCatalogCache:
    """Create a cache with a 300s TTL over the fake source."""
    return TermCatalogCache(
        fake_source,
        ttl_seconds=300,
        fetch_timeout=1.0,
        clock=fake_clock,
    )


class TestSplitTerms:
    """Tests for split_terms."""

    def test_splits_trims_and_lowercases(self) -> None:
        """Should yield trimmed lowercase terms."""
        assert list(split_terms(" Grano ,SEGALE,  orzo ")) == [
            "grano",
            "segale",
            "orzo",
        ]

    def test_skips_empty_fragments(self) -> None:
        """Should drop empty fragments between separators."""
        assert list(split_terms("latte,, ,uova,")) == ["latte", "uova"]

    @pytest.mark.parametrize("field", [None, ""])
    def test_missing_field_yields_nothing(self, field: str | None) -> None:
        """Should yield nothing for a null or empty field."""
        assert list(split_terms(field)) == []


class TestBuildTermSet:
    """Tests for build_term_set."""

    def test_collects_official_and_common_terms(
        self, catalog_entries: list[AllergenCatalogEntry]
    ) -> None:
        """Should union both term fields across entries."""
        assert build_term_set(catalog_entries) == EXPECTED_TERMS

    def test_drops_short_terms(self) -> None:
        """Should drop terms shorter than the minimum length."""
        entry = AllergenCatalogEntry(number=1, official_ingredients="e, ab, abc")
        assert build_term_set([entry], min_length=3) == {"abc"}

    def test_respects_custom_min_length(self) -> None:
        """Should honour a caller-supplied minimum length."""
        entry = AllergenCatalogEntry(number=1, official_ingredients="e, ab, abc")
        assert build_term_set([entry], min_length=1) == {"e", "ab", "abc"}

    def test_entries_without_terms(self) -> None:
        """Should produce an empty set when no entry carries terms."""
        assert build_term_set([AllergenCatalogEntryFactory.empty()]) == frozenset()

    def test_factory_entries(self) -> None:
        """Should read terms from factory-built categories."""
        terms = build_term_set(
            [AllergenCatalogEntryFactory.sesame(), AllergenCatalogEntryFactory.soy()]
        )
        assert {"sesamo", "tahina", "gomasio", "soia", "lecitina di soia"} <= terms
        assert "tofu" in terms


class TestLookupTiers:
    """Tests for the tier reported by lookup."""

    async def test_first_lookup_refreshes(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should fetch the catalog on first use."""
        result = await cache.lookup()

        assert result.source == TermSource.REFRESHED
        assert result.terms == EXPECTED_TERMS
        assert result.refreshed_at is not None
        assert fake_source.fetch_count == 1
        assert cache.is_populated

    async def test_fresh_cache_skips_io(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should serve a fresh set without fetching again."""
        await cache.lookup()
        result = await cache.lookup()

        assert result.source == TermSource.CACHE
        assert result.terms == EXPECTED_TERMS
        assert fake_source.fetch_count == 1

    async def test_fallback_when_never_populated(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should serve the built-in terms when the first fetch fails."""
        fake_source.error = CatalogUnavailableError("down")

        result = await cache.lookup()

        assert result.source == TermSource.FALLBACK
        assert result.terms == FALLBACK_TERMS
        assert result.refreshed_at is None
        assert not cache.is_populated
        assert cache.serving_fallback

    async def test_serving_fallback_clears_after_refresh(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should stop reporting fallback once the catalog is read."""
        assert not cache.serving_fallback
        fake_source.error = CatalogUnavailableError("down")
        await cache.lookup()
        assert cache.serving_fallback

        fake_source.error = None
        await cache.lookup()

        assert not cache.serving_fallback

    async def test_fallback_is_not_cached(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should retry the catalog on the next lookup after a fallback."""
        fake_source.error = CatalogUnavailableError("down")
        await cache.lookup()

        fake_source.error = None
        result = await cache.lookup()

        assert result.source == TermSource.REFRESHED
        assert result.terms == EXPECTED_TERMS
        assert fake_source.fetch_count == 2

    async def test_stale_when_refresh_fails(
        self,
        cache: TermCatalogCache,
        fake_source: FakeCatalogSource,
        fake_clock: FakeClock,
    ) -> None:
        """Should keep serving the previous set when a refresh fails."""
        first = await cache.lookup()
        fake_clock.advance(301)
        fake_source.error = CatalogUnavailableError("down")

        result = await cache.lookup()

        assert result.source == TermSource.STALE
        assert result.terms == EXPECTED_TERMS
        assert result.refreshed_at == first.refreshed_at

    async def test_stale_set_is_retried_next_time(
        self,
        cache: TermCatalogCache,
        fake_source: FakeCatalogSource,
        fake_clock: FakeClock,
    ) -> None:
        """Should try the catalog again on every lookup while stale."""
        await cache.lookup()
        fake_clock.advance(301)
        fake_source.error = CatalogUnavailableError("down")
        await cache.lookup()
        await cache.lookup()

        assert fake_source.fetch_count == 3

    async def test_custom_fallback_terms(self, fake_source: FakeCatalogSource) -> None:
        """Should serve the configured fallback set."""
        fake_source.error = RuntimeError("boom")
        cache = TermCatalogCache(fake_source, fallback_terms=["latte"])

        assert await cache.get_terms() == {"latte"}

    async def test_empty_catalog_is_cached(self, fake_clock: FakeClock) -> None:
        """Should cache an empty catalog as a successful refresh."""
        source = FakeCatalogSource([])
        cache = TermCatalogCache(source, clock=fake_clock)

        first = await cache.lookup()
        second = await cache.lookup()

        assert first.source == TermSource.REFRESHED
        assert first.terms == frozenset()
        assert second.source == TermSource.CACHE
        assert source.fetch_count == 1

    async def test_get_terms_never_raises(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should absorb unexpected source errors."""
        fake_source.error = ValueError("unexpected")

        assert await cache.get_terms() == FALLBACK_TERMS


class TestTtl:
    """Tests for TTL handling."""

    async def test_refreshes_after_ttl(
        self,
        cache: TermCatalogCache,
        fake_source: FakeCatalogSource,
        fake_clock: FakeClock,
    ) -> None:
        """Should fetch again once the TTL has elapsed."""
        await cache.lookup()
        fake_source.entries = [
            AllergenCatalogEntry(number=9, official_ingredients="sedano")
        ]
        fake_clock.advance(300)

        result = await cache.lookup()

        assert result.source == TermSource.REFRESHED
        assert result.terms == {"sedano"}
        assert fake_source.fetch_count == 2

    async def test_serves_cache_just_before_ttl(
        self,
        cache: TermCatalogCache,
        fake_source: FakeCatalogSource,
        fake_clock: FakeClock,
    ) -> None:
        """Should not refresh while younger than the TTL."""
        await cache.lookup()
        fake_clock.advance(299.9)

        result = await cache.lookup()

        assert result.source == TermSource.CACHE
        assert fake_source.fetch_count == 1

    async def test_is_stale(
        self, cache: TermCatalogCache, fake_clock: FakeClock
    ) -> None:
        """Should report staleness from the snapshot age."""
        await cache.lookup()
        state = cache.snapshot()
        assert state is not None

        assert not cache.is_stale(state)
        fake_clock.advance(300)
        assert cache.is_stale(state)

    def test_snapshot_empty_before_first_fetch(self, cache: TermCatalogCache) -> None:
        """Should have no snapshot before the first refresh."""
        assert cache.snapshot() is None
        assert not cache.is_populated


class TestExpire:
    """Tests for manual expiry."""

    async def test_expire_forces_refresh(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should refresh on the next lookup after expire()."""
        await cache.lookup()
        cache.expire()

        result = await cache.lookup()

        assert result.source == TermSource.REFRESHED
        assert fake_source.fetch_count == 2

    async def test_expire_keeps_terms_for_stale_tier(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should still serve the expired set if the refresh fails."""
        await cache.lookup()
        cache.expire()
        fake_source.error = CatalogUnavailableError("down")

        result = await cache.lookup()

        assert result.source == TermSource.STALE
        assert result.terms == EXPECTED_TERMS

    def test_expire_on_empty_cache_is_noop(self, cache: TermCatalogCache) -> None:
        """Should do nothing before the first refresh."""
        cache.expire()
        assert cache.snapshot() is None


class TestSingleFlight:
    """Tests for concurrent lookups sharing one refresh."""

    async def test_concurrent_lookups_share_one_fetch(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should issue a single fetch for many concurrent callers."""
        fake_source.gate = asyncio.Event()

        pending = [asyncio.create_task(cache.lookup()) for _ in range(20)]
        await asyncio.sleep(0)
        assert cache.refresh_in_progress

        fake_source.gate.set()
        results = await asyncio.gather(*pending)

        assert fake_source.fetch_count == 1
        assert all(r.source == TermSource.REFRESHED for r in results)
        assert all(r.terms == EXPECTED_TERMS for r in results)
        assert not cache.refresh_in_progress

    async def test_concurrent_callers_share_failure(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should give every joined caller the same degraded outcome."""
        fake_source.gate = asyncio.Event()
        fake_source.error = CatalogUnavailableError("down")

        pending = [asyncio.create_task(cache.lookup()) for _ in range(5)]
        await asyncio.sleep(0)
        fake_source.gate.set()
        results = await asyncio.gather(*pending)

        assert fake_source.fetch_count == 1
        assert {r.source for r in results} == {TermSource.FALLBACK}

    async def test_new_refresh_after_previous_completes(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should start a new fetch once the previous one has settled."""
        await cache.lookup()
        cache.expire()
        await cache.lookup()

        assert fake_source.fetch_count == 2

    async def test_cancelled_caller_does_not_cancel_refresh(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should let other callers receive the refresh a cancelled caller joined."""
        fake_source.gate = asyncio.Event()

        doomed = asyncio.create_task(cache.lookup())
        survivor = asyncio.create_task(cache.lookup())
        await asyncio.sleep(0)

        doomed.cancel()
        with pytest.raises(asyncio.CancelledError):
            await doomed

        fake_source.gate.set()
        result = await survivor

        assert result.source == TermSource.REFRESHED
        assert cache.is_populated
        assert fake_source.fetch_count == 1


class TestTimeout:
    """Tests for the fetch timeout."""

    async def test_slow_fetch_falls_back(self, fake_source: FakeCatalogSource) -> None:
        """Should stop waiting after the fetch timeout."""
        fake_source.delay = 5.0
        cache = TermCatalogCache(fake_source, fetch_timeout=0.01)

        result = await cache.lookup()

        assert result.source == TermSource.FALLBACK
        assert not cache.refresh_in_progress

    async def test_slow_refresh_serves_stale(
        self, fake_source: FakeCatalogSource, fake_clock: FakeClock
    ) -> None:
        """Should serve the stale set when a refresh times out."""
        cache = TermCatalogCache(
            fake_source, ttl_seconds=10, fetch_timeout=0.01, clock=fake_clock
        )
        await cache.lookup()
        fake_clock.advance(10)
        fake_source.delay = 5.0

        result = await cache.lookup()

        assert result.source == TermSource.STALE
        assert result.terms == EXPECTED_TERMS

    async def test_timeout_counted_as_timeout(
        self, fake_source: FakeCatalogSource
    ) -> None:
        """Should record timed-out refreshes under the timeout outcome."""
        fake_source.error = CatalogTimeoutError("slow")
        cache = TermCatalogCache(fake_source)
        before = _refreshes("timeout")

        await cache.lookup()

        assert _refreshes("timeout") == before + 1


class TestMetrics:
    """Tests for cache metrics."""

    async def test_counts_refresh_outcomes(
        self, cache: TermCatalogCache, fake_source: FakeCatalogSource
    ) -> None:
        """Should count successful and failed refreshes."""
        success_before = _refreshes("success")
        error_before = _refreshes("error")

        await cache.lookup()
        cache.expire()
        fake_source.error = CatalogUnavailableError("down")
        await cache.lookup()

        assert _refreshes("success") == success_before + 1
        assert _refreshes("error") == error_before + 1

    async def test_counts_lookups_by_source(self, cache: TermCatalogCache) -> None:
        """Should count lookups under the tier that served them."""

        def lookups(source: str) -> float:
            value = REGISTRY.get_sample_value(
                "allergen_highlighter_catalog_lookups_total", {"source": source}
            )
            return value or 0.0

        refreshed_before = lookups("refreshed")
        cache_before = lookups("cache")

        await cache.lookup()
        await cache.lookup()

        assert lookups("refreshed") == refreshed_before + 1
        assert lookups("cache") == cache_before + 1


class TestProperties:
    """Tests for cache accessors."""

    def test_exposes_configuration(self, fake_source: FakeCatalogSource) -> None:
        """Should expose source, TTL and fallback terms."""
        cache = TermCatalogCache(fake_source, ttl_seconds=42, fallback_terms={"x"})

        assert cache.source is fake_source
        assert cache.ttl_seconds == 42
        assert cache.fallback_terms == {"x"}
