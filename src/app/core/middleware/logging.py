"""Request logging middleware.

Logs one line when a request arrives and one when it completes, with the
request metadata bound to the log context. Server errors are logged at
ERROR, client errors at WARNING. Health, metrics and docs paths are skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from app.observability.logging import bind_context, get_logger


if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)


def _completion_level(status_code: int) -> str:
    if status_code >= 500:
        return "ERROR"
    if status_code >= 400:
        return "WARNING"
    return "INFO"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Structured request/response logging."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        exclude_paths: Iterable[str] | None = None,
        exclude_prefixes: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.exclude_paths = set(exclude_paths or {"/health", "/ready", "/metrics"})
        self.exclude_prefixes = tuple(exclude_prefixes)

    def is_excluded(self, path: str) -> bool:
        """Check whether requests to ``path`` go unlogged."""
        return path in self.exclude_paths or path.startswith(self.exclude_prefixes)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if self.is_excluded(request.url.path):
            return await call_next(request)

        bind_context(
            method=request.method,
            path=request.url.path,
            client_ip=self._get_client_ip(request),
        )

        logger.info(
            "Request started",
            content_length=request.headers.get("content-length"),
        )
        response = await call_next(request)
        logger.log(
            _completion_level(response.status_code),
            "Request completed",
            status_code=response.status_code,
        )

        return response

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        """Extract client IP, preferring proxy headers."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
