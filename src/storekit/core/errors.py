# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for storekit.

storekit recovers nothing itself: every error below propagates out of the
partition task, and the dataflow engine's task re-execution is the only
recovery path. The classes exist so callers (and engine-side retry policies)
can tell which stage of a partition run failed.
"""


class StorekitError(Exception):
    """Base class for all storekit errors."""

    ...


class ConfigurationUnavailableError(StorekitError):
    """
    No configuration snapshot could be resolved in this process.

    Raised at first use (opening a connection scope), never by the resolver itself.
    """

    def __init__(self, detail: str = "no configuration snapshot resolved in this process") -> None:
        super().__init__(detail)


class CredentialInjectionError(StorekitError):
    """The ambient identity rejected the delegated credentials."""

    ...


class ConnectionAcquisitionError(StorekitError):
    """The store client failed to open a connection."""

    ...


class BatchSubmissionError(StorekitError):
    """A batch (write or read) submission to the store failed as a whole."""

    def __init__(self, kind: str, size: int, detail: str) -> None:
        self.kind = kind
        self.size = size
        super().__init__(f"{kind} batch of {size} operation(s) failed: {detail}")


class ScanError(StorekitError):
    """The delegated table reader could not be set up for a scan."""

    ...
