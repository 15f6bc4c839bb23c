"""FastAPI dependencies for service access.

Services are initialized during application startup and stored in app.state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from app.core.exceptions import ServiceUnavailableException


if TYPE_CHECKING:
    from app.services.allergen.service import AllergenHighlighter


async def get_allergen_highlighter(request: Request) -> AllergenHighlighter:
    """Get the allergen highlighter from app state.

    Raises:
        ServiceUnavailableException: If the highlighter was not initialized.
    """
    highlighter: AllergenHighlighter | None = getattr(
        request.app.state, "allergen_highlighter", None
    )
    if highlighter is None:
        raise ServiceUnavailableException("Allergen highlighting not available")
    return highlighter
