"""
Prometheus metrics for secure asset resolution.

Focused on the coordination points:
- Credential refreshes
- Fetch attempts by outcome
- Cache hits, joins and misses
- Admission gate occupancy
- Fallbacks served to the rendering layer
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Core Metrics
# =============================================================================

credential_refresh_counter = Counter(
    "secure_asset_credential_refresh_total",
    "Total access token refreshes by outcome",
    labelnames=["outcome"],
)

fetch_attempts_counter = Counter(
    "secure_asset_fetch_attempts_total",
    "Total resource fetch attempts by outcome",
    labelnames=["outcome"],
)

cache_lookups_counter = Counter(
    "secure_asset_cache_lookups_total",
    "Resolution cache lookups (hit, joined an in-flight resolution, or miss)",
    labelnames=["result"],
)

gate_in_use_gauge = Gauge(
    "secure_asset_gate_in_use",
    "Admission gate slots currently held",
)

fallbacks_counter = Counter(
    "secure_asset_fallbacks_total",
    "Resolutions that returned the fallback handle",
    labelnames=["error_type"],
)

fetch_duration_seconds = Histogram(
    "secure_asset_fetch_duration_seconds",
    "Time from gate admission to a settled fetch, retries included",
    labelnames=["status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


# =============================================================================
# Recording helpers
# =============================================================================


def record_credential_refresh(outcome: str) -> None:
    credential_refresh_counter.labels(outcome=outcome).inc()


def record_fetch_attempt(outcome: str) -> None:
    fetch_attempts_counter.labels(outcome=outcome).inc()


def record_cache_lookup(result: str) -> None:
    cache_lookups_counter.labels(result=result).inc()


def update_gate_in_use(count: int) -> None:
    gate_in_use_gauge.set(count)


def record_fallback(error_type: str) -> None:
    fallbacks_counter.labels(error_type=error_type).inc()


def observe_fetch_duration(seconds: float, success: bool) -> None:
    fetch_duration_seconds.labels(status="success" if success else "failure").observe(seconds)


__all__ = [
    "record_credential_refresh",
    "record_fetch_attempt",
    "record_cache_lookup",
    "update_gate_in_use",
    "record_fallback",
    "observe_fetch_duration",
]
