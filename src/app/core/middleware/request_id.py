"""Request ID middleware.

Accepts the caller's ``X-Request-ID`` when it is a plausible identifier,
otherwise generates a UUID4. The ID is stored on ``request.state`` (picked up
by the error envelope), echoed in the response and bound to the log context.
"""

from __future__ import annotations

import re
import uuid
from typing import TYPE_CHECKING, Final

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from app.observability.logging import bind_context, clear_context


if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

MAX_REQUEST_ID_LENGTH: Final[int] = 128

_VALID_REQUEST_ID: Final = re.compile(r"[A-Za-z0-9._:\-]+")


def resolve_request_id(candidate: str | None) -> str:
    """Return ``candidate`` if usable as a log-safe ID, else a new UUID4."""
    if (
        candidate
        and len(candidate) <= MAX_REQUEST_ID_LENGTH
        and _VALID_REQUEST_ID.fullmatch(candidate)
    ):
        return candidate
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request and response."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_context()

        request_id = resolve_request_id(request.headers.get(self.header_name))
        request.state.request_id = request_id
        bind_context(request_id=request_id)

        response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response
