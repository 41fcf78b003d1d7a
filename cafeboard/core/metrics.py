"""Prometheus metrics for the service.

Thin wrappers around prometheus_client primitives that prefix names with the
service name and validate them. Metrics are registered on the default
registry and exposed on ``/metrics``.
"""

from __future__ import annotations

import re
from typing import Sequence

from prometheus_client import Counter, Histogram

_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
_SERVICE = "cafeboard"


def _validate(name: str) -> str:
    if not _NAME_RE.match(name):  # pragma: no cover - simple guard
        raise ValueError(
            f"Invalid metric name '{name}'. Use snake_case alphanumerics/underscores."
        )
    return name


def _prefix(name: str, service: str | None) -> str:
    if service and not name.startswith(service + "_"):
        return f"{service}_{name}"
    return name


def get_counter(
    name: str,
    documentation: str,
    labelnames: Sequence[str] = (),
    service: str | None = _SERVICE,
) -> Counter:
    return Counter(_validate(_prefix(name, service)), documentation, labelnames)


def get_histogram(
    name: str,
    documentation: str,
    labelnames: Sequence[str] = (),
    service: str | None = _SERVICE,
    buckets: list[float] | None = None,
) -> Histogram:
    full_name = _validate(_prefix(name, service))
    if buckets is None:
        return Histogram(full_name, documentation, labelnames)
    return Histogram(full_name, documentation, labelnames, buckets=buckets)


# Upstream (iCafeCloud)
UPSTREAM_REQUESTS_TOTAL = get_counter(
    "upstream_requests_total", "Requests issued to iCafeCloud.", ["resource"]
)
UPSTREAM_ERRORS_TOTAL = get_counter(
    "upstream_errors_total", "Failed iCafeCloud requests by error kind.", ["kind"]
)
UPSTREAM_LATENCY_SECONDS = get_histogram(
    "upstream_latency_seconds", "Latency of iCafeCloud requests."
)

# Cache
CACHE_HITS_TOTAL = get_counter("cache_hits_total", "Cache lookups served from cache.")
CACHE_MISSES_TOTAL = get_counter("cache_misses_total", "Cache lookups that missed.")
CACHE_ERRORS_TOTAL = get_counter(
    "cache_errors_total", "Absorbed cache backend failures.", ["operation"]
)

# Rankings
RANKING_DURATION_SECONDS = get_histogram(
    "ranking_duration_seconds",
    "Wall time of one member ranking computation.",
    buckets=[0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120],
)
RANKING_PAGES_FETCHED_TOTAL = get_counter(
    "ranking_pages_fetched_total", "Billing log pages consumed.", ["event"]
)

# Cache refresh scheduler
CACHE_REFRESH_RUNS_TOTAL = get_counter(
    "cache_refresh_runs_total", "Cache refresh attempts.", ["target"]
)
CACHE_REFRESH_FAILURES_TOTAL = get_counter(
    "cache_refresh_failures_total", "Cache refresh attempts that failed.", ["target"]
)
CACHE_REFRESH_SKIPPED_TOTAL = get_counter(
    "cache_refresh_skipped_total", "Scheduled ticks skipped (previous still running)."
)
