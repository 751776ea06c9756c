"""
Ops application for the gateway process.

Resolves ``GatewayConfig`` once at startup (exiting on a malformed provider
URL) and serves the operational endpoints:
  - /health: shallow liveness probe
  - /ready: reports the resolved capability flags
  - /metrics: Prometheus exposition of the invocation metrics the alert
    rules consume
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI
from starlette.responses import Response

from gateway.core.config import GatewayConfig, load_gateway_config
from gateway.core.logging import setup_logging
from gateway.core.metrics import GatewayMetrics
from gateway.core.settings import get_application_settings

setup_logging()
logger = logging.getLogger(__name__)


def create_app(config: Optional[GatewayConfig] = None, metrics: Optional[GatewayMetrics] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Parameters
    ----------
    config : GatewayConfig, optional
        Pre-resolved configuration; resolved from the process environment
        when omitted.
    metrics : GatewayMetrics, optional
        Metrics holder; a fresh registry is created when omitted.
    """
    settings = get_application_settings()
    config = config if config is not None else load_gateway_config()
    metrics = metrics if metrics is not None else GatewayMetrics()

    app = FastAPI(
        title="FaaS Gateway",
        version=settings.version,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.config = config
    app.state.metrics = metrics

    logger.info(
        "Gateway starting: external_provider=%s messaging=%s scale_from_zero=%s",
        config.uses_external_provider(),
        config.uses_messaging(),
        config.scale_from_zero,
    )

    @app.get("/health", tags=["ops"])
    def health() -> dict[str, str]:
        """Return basic liveness signal."""
        return {"status": "ok"}

    @app.get("/ready", tags=["ops"])
    def ready() -> dict[str, Any]:
        """Return readiness along with the capabilities the config enables."""
        return {
            "status": "ready",
            "external_provider": config.uses_external_provider(),
            "messaging": config.uses_messaging(),
            "scale_from_zero": config.scale_from_zero,
        }

    @app.get("/metrics", tags=["ops"])
    def metrics_endpoint() -> Response:
        """Expose Prometheus metrics for scraping."""
        return Response(content=metrics.render(), media_type=metrics.content_type)

    return app


app = create_app()
