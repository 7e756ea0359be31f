"""Prometheus metrics for the PlaceKit client."""

from placekit.monitoring.metrics import (
    attempt_latency_seconds,
    attempts_total,
    failovers_total,
    record_attempt,
    record_failover,
)

__all__ = [
    "attempts_total",
    "failovers_total",
    "attempt_latency_seconds",
    "record_attempt",
    "record_failover",
]
