# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("storekit")
except Exception:  # pragma: no cover
    # running from a source checkout without installed metadata
    __version__ = "0.0.0"

from .context import StoreContext
from .core.config import EngineConfig
from .core.errors import (
    BatchSubmissionError,
    ConfigurationUnavailableError,
    ConnectionAcquisitionError,
    CredentialInjectionError,
    ScanError,
    StorekitError,
)
from .snapshot import ConfigurationSnapshot, CredentialBundle, SecurityMode

__all__ = [
    "StoreContext",
    "EngineConfig",
    "ConfigurationSnapshot",
    "CredentialBundle",
    "SecurityMode",
    "StorekitError",
    "ConfigurationUnavailableError",
    "CredentialInjectionError",
    "ConnectionAcquisitionError",
    "BatchSubmissionError",
    "ScanError",
    "__version__",
]
