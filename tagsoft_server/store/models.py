"""
Record types held by the entity store.

Timestamps (created_at, updated_at) are UTC ISO-8601 strings so records
serialize to JSON unchanged. Event.ts is kept exactly as the client sent it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ContainerType(Enum):
    """Supported container runtimes."""

    WEB = "web"
    SERVER = "server"


@dataclass
class Account:
    """Top-level tenant owning containers.

    Attributes:
        account_id: Unique account identifier
        name: Display name as sent, never blank
        meta: Opaque client metadata
        created_at: First write time
        updated_at: Last write time
    """

    account_id: str
    name: str
    meta: dict[str, Any]
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Container:
    """Tag configuration bundle bound to one account.

    Attributes:
        container_id: Unique container identifier
        account_id: Owning account (must exist at write time)
        type: Container runtime
        name: Display name
        version: Caller-managed version, always >= 1
        variables: Opaque variable records, order preserved
        triggers: Opaque trigger records, order preserved
        tags: Opaque tag records, order preserved
        created_at: First write time
        updated_at: Last write time
    """

    container_id: str
    account_id: str
    type: ContainerType
    name: str
    version: int
    created_at: str
    updated_at: str
    variables: list[Any] = field(default_factory=list)
    triggers: list[Any] = field(default_factory=list)
    tags: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass(frozen=True)
class Event:
    """Immutable ingested occurrence."""

    id: str
    event: str
    ts: Any
    user: dict[str, Any] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    biz: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
