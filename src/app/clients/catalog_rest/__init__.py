"""PostgREST allergen catalog client package."""

from app.clients.catalog_rest.client import CatalogRestClient


__all__ = ["CatalogRestClient"]
