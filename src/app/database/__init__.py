"""PostgreSQL database layer.

This module provides:
- Connection pool management
- The allergen catalog repository
- Health check utilities
"""

from app.database.connection import (
    check_database_health,
    close_database_pool,
    ensure_database_pool,
    get_database_pool,
    init_database_pool,
)


__all__ = [
    "check_database_health",
    "close_database_pool",
    "ensure_database_pool",
    "get_database_pool",
    "init_database_pool",
]
