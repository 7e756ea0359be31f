"""Prometheus metrics for outbound PlaceKit requests.

Registered on the default prometheus_client registry, so an application
exposing ``/metrics`` picks them up without extra wiring.
Useful alerts:
- placekit_failovers_total (primary host degraded)
- placekit_attempts_total{outcome="timeout"} (latency regression)
"""

from prometheus_client import Counter, Histogram

# === Attempt Metrics ===

attempts_total = Counter(
    "placekit_attempts_total",
    "Total outbound attempts by HTTP method and outcome",
    ["method", "outcome"],
)
"""
Attempts counter.

Labels:
- method: POST, GET, PUT, PATCH, DELETE
- outcome: success, timeout, server_error, client_error, transport_error
"""

attempt_latency_seconds = Histogram(
    "placekit_attempt_latency_seconds",
    "Latency of one outbound attempt in seconds",
    ["method"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# === Failover Metrics ===

failovers_total = Counter(
    "placekit_failovers_total",
    "Total switches to the next host of the cascade",
    ["method"],
)


def record_attempt(method: str, outcome: str, latency_seconds: float) -> None:
    attempts_total.labels(method=method, outcome=outcome).inc()
    attempt_latency_seconds.labels(method=method).observe(latency_seconds)


def record_failover(method: str) -> None:
    failovers_total.labels(method=method).inc()
