# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .config import DEFAULT_BATCH_SIZE, DEFAULT_CALLBACK_POOL_SIZE, EngineConfig
from .errors import (
    BatchSubmissionError,
    ConfigurationUnavailableError,
    ConnectionAcquisitionError,
    CredentialInjectionError,
    ScanError,
    StorekitError,
)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CALLBACK_POOL_SIZE",
    "EngineConfig",
    "StorekitError",
    "ConfigurationUnavailableError",
    "CredentialInjectionError",
    "ConnectionAcquisitionError",
    "BatchSubmissionError",
    "ScanError",
]
