"""Prometheus metrics instrumentation.

This module provides:
- FastAPI automatic request metrics
- Allergen catalog lookup and refresh counters
- Metrics endpoint configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator, metrics

from app.core.config import get_settings
from app.observability.logging import get_logger


if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)

METRIC_NAMESPACE: Final[str] = "allergen_highlighter"

CATALOG_LOOKUPS = Counter(
    "catalog_lookups",
    "Term set lookups by the tier that served them.",
    ["source"],
    namespace=METRIC_NAMESPACE,
)

CATALOG_REFRESHES = Counter(
    "catalog_refreshes",
    "Catalog refresh attempts by outcome.",
    ["outcome"],
    namespace=METRIC_NAMESPACE,
)


def setup_metrics(app: FastAPI) -> Instrumentator:
    """Configure Prometheus HTTP instrumentation and expose ``{prefix}/metrics``.

    Args:
        app: The FastAPI application instance.

    Returns:
        Configured Instrumentator instance.
    """
    settings = get_settings()

    if not settings.observability.metrics.enabled:
        logger.info("Metrics collection disabled")
        return Instrumentator()

    prefix = settings.api.v1_prefix

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[
            f"{prefix}/health",
            f"{prefix}/ready",
            f"{prefix}/metrics",
        ],
        env_var_name="METRICS_ENABLED",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace=METRIC_NAMESPACE,
            metric_subsystem="http",
            should_only_respect_2xx_for_highr=False,
        )
    )

    instrumentator.instrument(app)

    metrics_endpoint = f"{prefix}/metrics"
    instrumentator.expose(
        app,
        endpoint=metrics_endpoint,
        include_in_schema=True,
        tags=["Monitoring"],
    )

    logger.info("Prometheus metrics configured", endpoint=metrics_endpoint)

    return instrumentator


__all__ = ["CATALOG_LOOKUPS", "CATALOG_REFRESHES", "setup_metrics"]
