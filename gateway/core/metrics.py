"""
Prometheus metrics exported by the gateway.

The alert rules in ``gateway/prometheus/alert.rules.yml`` divide the rate of
``gateway_function_invocation_total`` by ``gateway_service_count``, so those
names and the ``function_name``/``code`` labels must not change.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

INVOCATION_TOTAL = "gateway_function_invocation_total"
SERVICE_COUNT = "gateway_service_count"
FUNCTION_SECONDS = "gateway_functions_seconds"

EXPORTED_METRICS = frozenset({INVOCATION_TOTAL, SERVICE_COUNT, FUNCTION_SECONDS})


class GatewayMetrics:
    """Per-function invocation metrics on a dedicated registry."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        # prometheus_client appends "_total" to counter names on exposition.
        self.invocations = Counter(
            INVOCATION_TOTAL.removesuffix("_total"),
            "Function invocations by status code",
            ["function_name", "code"],
            registry=self.registry,
        )
        self.service_count = Gauge(
            SERVICE_COUNT,
            "Current replica count per function",
            ["function_name"],
            registry=self.registry,
        )
        self.duration = Histogram(
            FUNCTION_SECONDS,
            "Function invocation time taken",
            ["function_name", "code"],
            registry=self.registry,
        )

    def record_invocation(self, function_name: str, code: int | str) -> None:
        self.invocations.labels(function_name=function_name, code=str(code)).inc()

    def observe_duration(self, function_name: str, code: int | str, seconds: float) -> None:
        self.duration.labels(function_name=function_name, code=str(code)).observe(seconds)

    def set_service_count(self, function_name: str, replicas: int) -> None:
        self.service_count.labels(function_name=function_name).set(replicas)

    def render(self) -> bytes:
        return generate_latest(self.registry)
