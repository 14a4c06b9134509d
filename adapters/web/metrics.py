# adapters/web/metrics.py
# Prometheus instrumentation, one registry per app instance.

from flask import Response
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    CONTENT_TYPE_LATEST,
    generate_latest,
)

from application.ports.blob_store_port import IBlobStore


class RequestMetrics:
    """Request counters by endpoint plus a live view of the store size."""

    def __init__(self, store: IBlobStore) -> None:
        # Private registry so several apps (tests) can coexist in one process.
        self.registry = CollectorRegistry()
        self.requests = Counter(
            "pastebin_requests",
            "Requests handled, by endpoint.",
            ["handler"],
            registry=self.registry,
        )
        self.entries = Gauge(
            "pastebin_entries",
            "Entries currently held by the store, including unswept expired ones.",
            registry=self.registry,
        )
        self.entries.set_function(lambda: len(store))

    def inc(self, handler: str) -> None:
        self.requests.labels(handler=handler).inc()

    def value(self, handler: str) -> float:
        return self.registry.get_sample_value(
            "pastebin_requests_total", {"handler": handler}
        ) or 0.0

    def render(self) -> Response:
        return Response(generate_latest(self.registry), content_type=CONTENT_TYPE_LATEST)
