# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Delegated credential injection.

The driver captures two bundles at construction time: the engine's view of the
submitting user's credentials, and the bundle produced while preparing store
access. On the worker both are merged into the process's ambient identity,
which is then marked as a proxy identity, exactly once per process.
"""

import threading
from collections.abc import Callable
from enum import Enum
from typing import Protocol, runtime_checkable

from ..core.errors import CredentialInjectionError
from ..core.log import get_logger
from ..snapshot import CredentialBundle
from .context import ProcessContext

__all__ = [
    "AuthenticationMethod",
    "AmbientIdentity",
    "ProcessIdentity",
    "CredentialInjector",
    "process_identity",
]

_log = get_logger("runtime.credentials")


class AuthenticationMethod(str, Enum):
    simple = "simple"
    kerberos = "kerberos"
    token = "token"
    proxy = "proxy"


@runtime_checkable
class AmbientIdentity(Protocol):
    """The security identity the store client authenticates with in this process."""

    def add_credentials(self, bundle: CredentialBundle) -> None: ...
    def set_authentication_method(self, method: AuthenticationMethod) -> None: ...


class ProcessIdentity:
    """
    Default in-process ambient identity.

    Store clients read `credentials` / `authentication_method` when they open
    connections. Updates are applied under a lock and published as one new
    bundle, so readers never see a half-merged state.
    """

    def __init__(self, user: str | None = None) -> None:
        self.user = user
        self._lock = threading.Lock()
        self._credentials = CredentialBundle(owner=user)
        self._method = AuthenticationMethod.simple

    @property
    def credentials(self) -> CredentialBundle:
        return self._credentials

    @property
    def authentication_method(self) -> AuthenticationMethod:
        return self._method

    def add_credentials(self, bundle: CredentialBundle) -> None:
        with self._lock:
            self._credentials = self._credentials.merge(bundle)

    def set_authentication_method(self, method: AuthenticationMethod) -> None:
        with self._lock:
            self._method = method


_PROCESS_IDENTITY: ProcessIdentity | None = None
_PROCESS_IDENTITY_LOCK = threading.Lock()


def process_identity() -> ProcessIdentity:
    global _PROCESS_IDENTITY
    with _PROCESS_IDENTITY_LOCK:
        if _PROCESS_IDENTITY is None:
            _PROCESS_IDENTITY = ProcessIdentity()
        return _PROCESS_IDENTITY


class CredentialInjector:
    """
    Apply delegated credentials into the ambient identity at most once per process.

    Args:
        engine_credentials: zero-arg callable returning the driver-captured
            bundle (a broadcast's `.value` in practice), or None when unsecured.
        identity: ambient identity to merge into; defaults to `process_identity()`.
        context: per-process state holding the guard.
    """

    def __init__(
        self,
        engine_credentials: Callable[[], CredentialBundle | None],
        *,
        identity: AmbientIdentity | None = None,
        context: ProcessContext | None = None,
    ) -> None:
        self._engine_credentials = engine_credentials
        self._identity = identity or process_identity()
        self._ctx = context or ProcessContext.current()

    @property
    def applied(self) -> bool:
        return self._ctx.credentials_applied

    def apply_once(self, task_credentials: CredentialBundle | None) -> bool:
        """
        Merge credentials into the identity if not done yet in this process.

        Returns True when this call performed the injection.
        """
        if self._ctx.credentials_applied:
            return False

        with self._ctx.lock:
            if self._ctx.credentials_applied:
                return False

            credentials = self._engine_credentials()
            _log.info(
                "credential injection check",
                event="credentials.check",
                applied=False,
                credentials=repr(credentials),
            )
            if credentials is None:
                return False

            # guard is published only after a complete merge
            try:
                self._identity.add_credentials(credentials)
                self._identity.set_authentication_method(AuthenticationMethod.proxy)
                if task_credentials is not None:
                    self._identity.add_credentials(task_credentials)
            except Exception as e:
                raise CredentialInjectionError(f"ambient identity rejected delegated credentials: {e}") from e

            self._ctx.credentials_applied = True
            _log.info("delegated credentials applied", event="credentials.applied")
            return True
