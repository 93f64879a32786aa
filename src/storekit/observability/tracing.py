# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
storekit.observability.tracing
==============================

OpenTelemetry spans around partition runs and flushes.

storekit only depends on `opentelemetry-api`: without an SDK tracer provider
installed by the application, every span is a no-op. Applications that want
traces configure the SDK (exporter, sampler) themselves.

Usage:
    with span("storekit.flush", kind="lookup", size=len(batch)):
        ...
"""

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace as otel_trace

__all__ = ["span", "tracer"]

_TRACER_NAME = "storekit"


def tracer() -> otel_trace.Tracer:
    return otel_trace.get_tracer(_TRACER_NAME)


@contextmanager
def span(name: str, **attributes: Any) -> Iterator[otel_trace.Span]:
    """Start a span with `attributes`; None values are skipped."""
    attrs = {f"storekit.{k}": v for k, v in attributes.items() if v is not None}
    with tracer().start_as_current_span(name, attributes=attrs) as sp:
        yield sp

