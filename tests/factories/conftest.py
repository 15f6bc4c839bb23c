"""Factory configuration and exports.

This module exports all factories for convenient importing in tests.
"""

from tests.factories.allergen import AllergenCatalogEntryFactory


__all__ = ["AllergenCatalogEntryFactory"]
