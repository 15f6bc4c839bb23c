"""Shared test fixtures and configuration for the Allergen Highlighter tests.

Forces the ``test`` environment before any application module loads its
settings.
"""

from __future__ import annotations

import os


os.environ.setdefault("APP_ENV", "test")

from typing import TYPE_CHECKING  # noqa: E402

import pytest  # noqa: E402

from app.core.config import get_settings  # noqa: E402
from app.schemas.allergen import AllergenCatalogEntry  # noqa: E402
from tests.fixtures.catalog import FakeCatalogSource, FakeClock  # noqa: E402


if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Keep settings built by one test from leaking into the next."""
    yield
    get_settings.cache_clear()


@pytest.fixture
def catalog_entries() -> list[AllergenCatalogEntry]:
    """A small catalog in the shape of the allergens table."""
    return [
        AllergenCatalogEntry(
            number=1,
            category_name="Cereali contenenti glutine",
            official_ingredients="grano, segale, orzo",
            common_examples="farina di grano, Pane",
        ),
        AllergenCatalogEntry(
            number=3,
            category_name="Uova",
            official_ingredients="uova",
            common_examples="uovo, albume",
        ),
        AllergenCatalogEntry(
            number=7,
            category_name="Latte",
            official_ingredients="latte, lattosio",
            common_examples=None,
        ),
    ]


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock the cache reads instead of time.monotonic."""
    return FakeClock()


@pytest.fixture
def fake_source(catalog_entries: list[AllergenCatalogEntry]) -> FakeCatalogSource:
    """Catalog source answering with ``catalog_entries``."""
    return FakeCatalogSource(catalog_entries)
