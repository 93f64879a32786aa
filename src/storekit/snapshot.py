# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
storekit.snapshot
=================

Serializable values shipped from the driver to every worker process:

- ConfigurationSnapshot: how to reach the store (addresses, timeouts, security).
- CredentialBundle: delegated tokens and secret keys of the submitting user.

Both are frozen pydantic v2 models with `extra="forbid"`, so a snapshot read
back from the persisted fallback file fails fast on unknown fields instead of
silently connecting with a partial configuration.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SecurityMode(str, Enum):
    simple = "simple"
    kerberos = "kerberos"


class ConfigurationSnapshot(BaseModel):
    """
    Immutable bundle of connection parameters.

    Fields:
        cluster_addresses: Coordination-service hosts used to locate the store.
        client_port: Port of the coordination service.
        znode_parent: Root path of the store's metadata in the coordination service.
        rpc_timeout_ms / operation_timeout_ms: passed through to the store client.
        security_mode: Authentication mode the client must use.
        properties: Free-form client properties (`hbase.*` style keys).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    cluster_addresses: tuple[str, ...] = Field(default=("localhost",), min_length=1)
    client_port: int = Field(default=2181, gt=0, lt=65536)
    znode_parent: str = "/hbase"
    rpc_timeout_ms: int = Field(default=60_000, gt=0)
    operation_timeout_ms: int = Field(default=1_200_000, gt=0)
    security_mode: SecurityMode = SecurityMode.simple
    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator("cluster_addresses")
    @classmethod
    def _non_blank_addresses(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not all(a.strip() for a in v):
            raise ValueError("cluster_addresses must not contain blank hosts")
        return v

    @property
    def quorum(self) -> str:
        return ",".join(self.cluster_addresses)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def dumps(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def loads(cls, data: bytes | str) -> ConfigurationSnapshot:
        return cls.model_validate_json(data)


class CredentialBundle(BaseModel):
    """
    Opaque delegation tokens plus secret keys, scoped to the submitting user.

    Token and key values are already-encoded strings; storekit never inspects them.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    owner: str | None = None
    tokens: dict[str, str] = Field(default_factory=dict)
    secret_keys: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.tokens and not self.secret_keys

    def merge(self, other: CredentialBundle | None) -> CredentialBundle:
        """Return a new bundle holding both sets; `other` wins on alias conflicts."""
        if other is None:
            return self
        return CredentialBundle(
            owner=self.owner or other.owner,
            tokens={**self.tokens, **other.tokens},
            secret_keys={**self.secret_keys, **other.secret_keys},
        )

    def __repr__(self) -> str:
        # token values never reach logs
        return (
            f"CredentialBundle(owner={self.owner!r}, tokens={sorted(self.tokens)}, "
            f"secret_keys={len(self.secret_keys)})"
        )

    __str__ = __repr__
