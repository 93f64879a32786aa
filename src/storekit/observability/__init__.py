# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .metrics import EngineMetrics, engine_metrics
from .tracing import span

__all__ = ["EngineMetrics", "engine_metrics", "span"]
