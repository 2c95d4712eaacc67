"""
Fee estimator instrumentation for blockfee.

Provides Prometheus metrics that track which model served each estimate,
why estimates failed and the distribution of returned fee rates. Callers
resolve ``BLOCKFEE_METRICS_ENABLED`` once and pass it as ``enabled``.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

estimates_counter = Counter(
    "blockfee_estimates_total", "Total fee estimates served", ["model"]
)

estimate_errors_counter = Counter(
    "blockfee_estimate_errors_total",
    "Total fee estimates that failed with a typed error",
    ["reason"],
)

estimated_fee_rate = Histogram(
    "blockfee_estimated_fee_rate",
    "Fee rates returned by the estimator (sat/vB)",
    ["model"],
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000),
)


def record_estimate(model: str, fee_rate: float, enabled: bool = True) -> None:
    """Count a served estimate and observe its fee rate."""
    if not enabled:
        return

    estimates_counter.labels(model=model).inc()
    estimated_fee_rate.labels(model=model).observe(fee_rate)


def record_estimate_error(reason: str, enabled: bool = True) -> None:
    if not enabled:
        return

    estimate_errors_counter.labels(reason=reason).inc()


__all__ = [
    "estimates_counter",
    "estimate_errors_counter",
    "estimated_fee_rate",
    "record_estimate",
    "record_estimate_error",
]
