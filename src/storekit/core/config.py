# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
storekit.core.config
====================

Engine-side configuration (how partitions are executed), as opposed to the
ConfigurationSnapshot (how to reach the store).

- Optional JSON file loading, then env overrides, then explicit overrides.
- If a config file path is not provided or not found, defaults are used.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_BATCH_SIZE = 1000
DEFAULT_CALLBACK_POOL_SIZE = 10


def _try_load_json(path: Path | None) -> dict[str, Any]:
    if not path:
        return {}
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        # Fail soft; env and overrides still apply
        pass
    return {}


def _env_int(name: str) -> int | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    return int(val)


@dataclass
class EngineConfig:
    """Per-job engine settings shipped to every partition task."""

    # Batching
    default_batch_size: int = DEFAULT_BATCH_SIZE

    # Callback path: bounded number of in-flight batch submissions per partition
    callback_pool_size: int = DEFAULT_CALLBACK_POOL_SIZE

    # Off by default: the pooled path runs without credential injection
    inject_credentials_on_pooled_path: bool = False

    # Persisted fallback for the configuration snapshot
    tmp_config_path: str | None = None

    # Observability
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        if self.default_batch_size < 1:
            raise ValueError("default_batch_size must be >= 1")
        if self.callback_pool_size < 1:
            raise ValueError("callback_pool_size must be >= 1")
        if self.tmp_config_path is not None and not str(self.tmp_config_path).strip():
            raise ValueError("tmp_config_path must be a non-empty path or None")

    @staticmethod
    def load(path: Path | str | None = None, overrides: dict[str, Any] | None = None) -> EngineConfig:
        """
        Load config from JSON file (if provided), then env, then overrides.

        Env overrides:
          - STOREKIT_BATCH_SIZE
          - STOREKIT_CALLBACK_POOL_SIZE
          - STOREKIT_TMP_CONFIG_PATH
        """
        data: dict[str, Any] = {}
        data.update(_try_load_json(Path(path) if path else None))

        batch_size = _env_int("STOREKIT_BATCH_SIZE")
        if batch_size is not None:
            data["default_batch_size"] = batch_size
        pool_size = _env_int("STOREKIT_CALLBACK_POOL_SIZE")
        if pool_size is not None:
            data["callback_pool_size"] = pool_size
        if os.getenv("STOREKIT_TMP_CONFIG_PATH"):
            data["tmp_config_path"] = os.environ["STOREKIT_TMP_CONFIG_PATH"]

        if overrides:
            data.update(overrides)
        return EngineConfig(**data)
