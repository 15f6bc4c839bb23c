"""Database repositories."""

from app.database.repositories.allergen_catalog import AllergenCatalogRepository


__all__ = ["AllergenCatalogRepository"]
