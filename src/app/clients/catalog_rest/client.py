"""PostgREST client for the allergen catalog.

Reads the allergen table through a PostgREST-compatible endpoint (such as a
hosted Supabase project) when the service has no direct database access.
"""

from __future__ import annotations

from typing import Final

import httpx
import orjson
from pydantic import TypeAdapter, ValidationError

from app.observability.logging import get_logger
from app.schemas.allergen import AllergenCatalogEntry
from app.services.allergen.exceptions import (
    CatalogResponseError,
    CatalogTimeoutError,
    CatalogUnavailableError,
)


logger = get_logger(__name__)

_ENTRIES_ADAPTER: Final = TypeAdapter(list[AllergenCatalogEntry])


class CatalogRestClient:
    """Catalog source that queries ``GET {endpoint}?select=...&order=number.asc``.

    Example:
        ```python
        client = CatalogRestClient(
            endpoint="https://example.supabase.co/rest/v1/allergens",
            api_key="anon-key",
        )
        await client.initialize()
        entries = await client.fetch_all()
        await client.shutdown()
        ```
    """

    SELECT_COLUMNS: Final[str] = (
        "number,category_name,official_ingredients,common_examples"
    )

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Full URL of the allergens collection.
            api_key: Key sent as ``apikey`` and bearer token; optional.
            timeout: HTTP timeout in seconds.
            http_client: HTTP client for API requests.
        """
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._http = http_client
        self._owns_http_client = http_client is None

    @property
    def endpoint(self) -> str:
        """URL of the allergens collection."""
        return self._endpoint

    async def initialize(self) -> None:
        """Create the HTTP client if one was not provided."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        logger.info("CatalogRestClient initialized", endpoint=self._endpoint)

    async def shutdown(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_http_client and self._http is not None:
            await self._http.aclose()
            self._http = None
        logger.debug("CatalogRestClient shutdown")

    async def fetch_all(self) -> list[AllergenCatalogEntry]:
        """Fetch every allergen category ordered by number.

        Raises:
            CatalogUnavailableError: If the endpoint cannot be reached.
            CatalogTimeoutError: If the request times out.
            CatalogResponseError: For HTTP errors or an unparseable body.
        """
        if self._http is None:
            msg = "Client not initialized. Call initialize() first."
            raise CatalogUnavailableError(msg)

        params = {"select": self.SELECT_COLUMNS, "order": "number.asc"}

        try:
            response = await self._http.get(
                self._endpoint,
                params=params,
                headers=self._headers(),
            )
        except httpx.TimeoutException as e:
            msg = f"Allergen catalog request timed out: {e}"
            raise CatalogTimeoutError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Allergen catalog unreachable: {e}"
            raise CatalogUnavailableError(msg) from e

        if response.status_code != httpx.codes.OK:
            msg = f"Allergen catalog returned HTTP {response.status_code}"
            raise CatalogResponseError(msg, status_code=response.status_code)

        try:
            entries = _ENTRIES_ADAPTER.validate_python(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError) as e:
            msg = f"Malformed allergen catalog response: {e}"
            raise CatalogResponseError(msg, status_code=response.status_code) from e

        logger.debug("Fetched allergen catalog", entries=len(entries))
        return entries

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers
