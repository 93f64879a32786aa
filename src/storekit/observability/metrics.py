# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
storekit.observability.metrics
==============================

Prometheus metrics for partition execution.

- Label-validated wrappers (SafeCounter/SafeHistogram) keep cardinality low:
  labels are the operation kind, never table names or row keys.
- Engine metrics are created once per process on the default registry.
"""

import threading
from typing import Any, Iterable, Mapping, Sequence

import prometheus_client as prom

__all__ = [
    "EngineMetrics",
    "SafeCounter",
    "SafeHistogram",
    "engine_metrics",
]


class _LabelChecker:
    """Validate label names against an allowlist."""

    __slots__ = ("_allowed",)

    def __init__(self, allowed: Iterable[str] | None) -> None:
        self._allowed = frozenset(allowed or ())

    def validate(self, labels: Mapping[str, str]) -> None:
        unknown = [k for k in labels.keys() if k not in self._allowed]
        if unknown:
            raise ValueError(f"Unknown label(s) for metric: {unknown}; allowed={sorted(self._allowed)}")


class SafeCounter:
    """
    Counter wrapper that validates label names.

    Example:
        cnt = SafeCounter("storekit_flushes_total", "Batches flushed", label_names=["kind"])
        cnt.labels(kind="mutate").inc()
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str],
        registry: Any | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names)
        self._metric = prom.Counter(
            name,
            documentation,
            labelnames=list(label_names),
            registry=registry if registry is not None else prom.REGISTRY,
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


class SafeHistogram:
    """Histogram wrapper that validates label names."""

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str],
        registry: Any | None = None,
        buckets: Sequence[float] | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names)
        self._metric = prom.Histogram(
            name,
            documentation,
            labelnames=list(label_names),
            registry=registry if registry is not None else prom.REGISTRY,
            buckets=list(buckets) if buckets is not None else prom.Histogram.DEFAULT_BUCKETS,
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


class EngineMetrics:
    """Flush/operation counters and flush latency, labelled by operation kind."""

    def __init__(self, registry: Any | None = None) -> None:
        self.flushes = SafeCounter(
            "storekit_flushes_total",
            "Batches submitted to the store",
            label_names=["kind"],
            registry=registry,
        )
        self.operations = SafeCounter(
            "storekit_operations_total",
            "Record-level operations submitted to the store",
            label_names=["kind"],
            registry=registry,
        )
        self.failures = SafeCounter(
            "storekit_failures_total",
            "Failed submissions or partition runs",
            label_names=["kind"],
            registry=registry,
        )
        self.flush_seconds = SafeHistogram(
            "storekit_flush_seconds",
            "Latency of one flush call",
            label_names=["kind"],
            registry=registry,
        )

    def observe_flush(self, kind: str, size: int, seconds: float) -> None:
        self.flushes.labels(kind=kind).inc()
        self.operations.labels(kind=kind).inc(size)
        self.flush_seconds.labels(kind=kind).observe(seconds)

    def observe_failure(self, kind: str) -> None:
        self.failures.labels(kind=kind).inc()


_ENGINE_METRICS: EngineMetrics | None = None
_ENGINE_METRICS_LOCK = threading.Lock()


def engine_metrics() -> EngineMetrics:
    """Process-wide EngineMetrics on the default registry (created on first use)."""
    global _ENGINE_METRICS
    with _ENGINE_METRICS_LOCK:
        if _ENGINE_METRICS is None:
            _ENGINE_METRICS = EngineMetrics()
        return _ENGINE_METRICS
