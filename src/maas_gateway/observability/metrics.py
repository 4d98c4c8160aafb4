"""Prometheus metrics for the resource pipeline.

Key Responsibilities:
    - Define the counters, histograms and gauges emitted by dispatch and the
      resource cache
    - Provide small recording helpers so call-sites stay one line long

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.handlers.registry.HandlerRegistry`
      and :class:`~maas_gateway.resources.cache.ResourceCache`
    - Downstream: Prometheus scrapes the ``/metrics`` endpoint

Thread Safety:
    - Thread-safe: all metric operations use atomic Prometheus operations
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ==============================================================================
# METRIC DEFINITIONS
# ==============================================================================

RESOURCE_REQUESTS_TOTAL = Counter(
    "maas_gateway_resource_requests_total",
    "Resource requests dispatched to handlers",
    ["handler", "outcome"],
)

RESOURCE_DISPATCH_SECONDS = Histogram(
    "maas_gateway_resource_dispatch_seconds",
    "Latency of resource dispatch including filtering and pagination",
    ["handler"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

RESOURCE_CACHE_LOOKUPS_TOTAL = Counter(
    "maas_gateway_resource_cache_lookups_total",
    "Resource cache lookups by result",
    ["result"],
)

RESOURCE_CACHE_EVICTIONS_TOTAL = Counter(
    "maas_gateway_resource_cache_evictions_total",
    "Entries removed from the resource cache",
    ["reason"],
)

RESOURCE_CACHE_ENTRIES = Gauge(
    "maas_gateway_resource_cache_entries",
    "Entries currently held by the resource cache",
)

# ==============================================================================
# RECORDING HELPERS
# ==============================================================================


def record_dispatch(handler: str, outcome: str, duration_seconds: float) -> None:
    RESOURCE_REQUESTS_TOTAL.labels(handler=handler, outcome=outcome).inc()
    RESOURCE_DISPATCH_SECONDS.labels(handler=handler).observe(duration_seconds)


def record_cache_lookup(hit: bool) -> None:
    RESOURCE_CACHE_LOOKUPS_TOTAL.labels(result="hit" if hit else "miss").inc()


def record_cache_eviction(reason: str, count: int = 1) -> None:
    if count > 0:
        RESOURCE_CACHE_EVICTIONS_TOTAL.labels(reason=reason).inc(count)


def set_cache_size(size: int) -> None:
    RESOURCE_CACHE_ENTRIES.set(size)


__all__ = [
    "RESOURCE_CACHE_ENTRIES",
    "RESOURCE_CACHE_EVICTIONS_TOTAL",
    "RESOURCE_CACHE_LOOKUPS_TOTAL",
    "RESOURCE_DISPATCH_SECONDS",
    "RESOURCE_REQUESTS_TOTAL",
    "record_cache_eviction",
    "record_cache_lookup",
    "record_dispatch",
    "set_cache_size",
]
