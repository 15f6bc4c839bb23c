"""Integration test fixtures.

Builds the real application with test settings and a highlighter backed by
an in-memory catalog source, exercised through httpx's ASGI transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings, get_settings
from app.core.config.settings import (
    ApiSettings,
    AppSettings,
    CatalogSettings,
    HighlightingSettings,
    LoggingSettings,
)
from app.factory import create_app
from app.services.allergen.factory import create_highlighter
from tests.fixtures.catalog import FakeCatalogSource


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fastapi import FastAPI

    from app.schemas.allergen import AllergenCatalogEntry
    from app.services.allergen.service import AllergenHighlighter


pytestmark = pytest.mark.integration

PREFIX = "/api/v1/lot-register"


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with a REST backend and small limits."""
    return Settings(
        APP_ENV="test",
        app=AppSettings(name="test-app", version="0.0.1-test"),
        api=ApiSettings(v1_prefix=PREFIX),
        catalog=CatalogSettings(backend="rest", warm_on_startup=False),
        highlighting=HighlightingSettings(max_text_length=1000, max_batch_size=5),
        logging=LoggingSettings(level="WARNING", format="text"),
    )


@pytest.fixture
def catalog_source(catalog_entries: list[AllergenCatalogEntry]) -> FakeCatalogSource:
    """In-memory catalog behind the highlighter."""
    return FakeCatalogSource(catalog_entries)


@pytest.fixture
def highlighter(
    test_settings: Settings, catalog_source: FakeCatalogSource
) -> AllergenHighlighter:
    """Highlighter wired exactly as at startup, minus the real catalog."""
    return create_highlighter(test_settings, source=catalog_source)


@pytest.fixture
def app(test_settings: Settings, highlighter: AllergenHighlighter) -> FastAPI:
    """Create FastAPI app with test settings and the highlighter attached."""
    application = create_app(test_settings)
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.state.allergen_highlighter = highlighter
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
