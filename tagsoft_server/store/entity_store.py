"""
In-memory entity store for TagSoft.

This module owns the three collections the API works on:
- accounts: keyed by account_id, upsert with field merge
- containers: keyed by container_id, bound to an existing account
- events: append-only list in ingestion order

Invariants:
    - Every collection has its own asyncio.Lock; writes happen under it
    - Id generation and insertion share one critical section, so two
      concurrent upserts without ids can never land on the same key
    - Validation completes before anything is written (no partial writes)
    - Iteration order is insertion order; dict keys keep the first
      insertion position across later updates
    - Only known fields are copied from payloads, unknown keys are dropped
    - Callers only ever see copies; stored records are never handed out

Known race:
    Container upsert checks the account under the accounts lock and then
    writes under the containers lock. Accounts are never deleted, so the
    account cannot disappear between the check and the write.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import math
import uuid
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from ..errors import NotFound, ValidationFailed
from ..ids import IdGenerator
from .models import Account, Container, ContainerType, Event

logger = logging.getLogger(__name__)

ACCOUNT_PREFIX = "acct"
CONTAINER_PREFIX = "ctr"

ACCOUNT_FIELDS = ("account_id", "name", "meta")
CONTAINER_FIELDS = (
    "container_id",
    "account_id",
    "type",
    "name",
    "version",
    "variables",
    "triggers",
    "tags",
)
EVENT_PAYLOAD_FIELDS = ("user", "context", "biz")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _detached(record: Account | Container) -> Account | Container:
    """Deep copy of a stored record, safe to hand to callers."""
    return copy.deepcopy(record)


def _known_fields(payload: Mapping[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    """Pick the known, non-null keys of a payload."""
    if not isinstance(payload, Mapping):
        raise ValidationFailed("payload must be an object", errors=["payload must be an object"])
    dropped = [key for key in payload if key not in names]
    if dropped:
        logger.debug(f"Dropping unknown fields: {sorted(map(str, dropped))}")
    return {name: payload[name] for name in names if payload.get(name) is not None}


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{field_name} required", field_name=field_name)
    return value


def _require_id(value: Any, field_name: str) -> str:
    """Validate an id used for lookup.

    A blank or non-string id is malformed (ValidationFailed), which callers
    can tell apart from a well-formed id that is simply absent (NotFound).
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{field_name} is malformed", field_name=field_name)
    return value


def _mapping(value: Any, field_name: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationFailed(f"{field_name} must be an object", field_name=field_name)
    return copy.deepcopy(dict(value))


def _sequence(value: Any, field_name: str) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed(f"{field_name} must be a list", field_name=field_name)
    return copy.deepcopy(list(value))


def coerce_container_type(value: Any) -> ContainerType:
    """Accept 'web' or 'server' in any letter case."""
    if isinstance(value, ContainerType):
        return value
    if isinstance(value, str):
        try:
            return ContainerType(value.lower())
        except ValueError:
            pass
    raise ValidationFailed(
        f"type must be one of: {', '.join(t.value for t in ContainerType)}",
        field_name="type",
    )


def coerce_version(value: Any) -> int:
    """Coerce to a positive integer; anything unusable becomes 1."""
    if isinstance(value, bool) or value is None:
        return 1
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 1
    if isinstance(value, float):
        if not math.isfinite(value):
            return 1
        value = int(value)
    if not isinstance(value, int):
        return 1
    return value if value >= 1 else 1


class EntityStore:
    """Holds accounts, containers and events for one process.

    Created once per application and passed to every operation; tests
    build a fresh instance each.

    Args:
        id_generator: Generator for account and container ids
        clock: Returns the current UTC datetime
        event_id_factory: Returns a new unique event id

    Example:
        >>> store = EntityStore()
        >>> account = await store.upsert_account({"name": "Acme"})
        >>> await store.upsert_container({
        ...     "name": "Main site",
        ...     "account_id": account.account_id,
        ...     "type": "web",
        ... })
    """

    def __init__(
        self,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
        event_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._ids = id_generator or IdGenerator()
        self._clock = clock or utc_now
        self._event_id_factory = event_id_factory or (lambda: str(uuid.uuid4()))

        self._accounts: dict[str, Account] = {}
        self._containers: dict[str, Container] = {}
        self._events: list[Event] = []

        self._accounts_lock = asyncio.Lock()
        self._containers_lock = asyncio.Lock()
        self._events_lock = asyncio.Lock()

    def _now(self) -> str:
        return self._clock().isoformat()

    # =========================================================================
    # Accounts
    # =========================================================================

    async def upsert_account(self, payload: Mapping[str, Any]) -> Account:
        """Create an account or merge fields into an existing one.

        Args:
            payload: ``{account_id?, name, meta?}``

        Returns:
            The stored account

        Raises:
            ValidationFailed: If the merged name is blank or meta is not an object
        """
        fields = _known_fields(payload, ACCOUNT_FIELDS)
        account_id = fields.get("account_id")
        if account_id is not None:
            account_id = _require_id(account_id, "account_id")

        async with self._accounts_lock:
            existing = self._accounts.get(account_id) if account_id else None

            name = _require_text(fields.get("name", existing.name if existing else None), "name")
            if "meta" in fields:
                meta = _mapping(fields["meta"], "meta")
            else:
                meta = dict(existing.meta) if existing else {}

            now = self._now()
            if existing is None:
                if account_id is None:
                    account_id = self._ids.generate(ACCOUNT_PREFIX, name, self._accounts.__contains__)
                record = Account(
                    account_id=account_id,
                    name=name,
                    meta=meta,
                    created_at=now,
                    updated_at=now,
                )
                logger.debug(f"Created account {account_id}")
            else:
                record = replace(existing, name=name, meta=meta, updated_at=now)
                logger.debug(f"Updated account {account_id}")

            self._accounts[record.account_id] = record
            return _detached(record)

    async def get_account(self, account_id: str) -> Account:
        """Fetch one account.

        Raises:
            ValidationFailed: If the id is blank or not a string
            NotFound: If no account has this id
        """
        account_id = _require_id(account_id, "account_id")
        async with self._accounts_lock:
            account = self._accounts.get(account_id)
        if account is None:
            raise NotFound(f"Account '{account_id}' not found", "account", account_id)
        return _detached(account)

    async def list_accounts(
        self,
        predicate: Callable[[Account], bool] | None = None,
    ) -> list[Account]:
        """All accounts in insertion order, optionally filtered."""
        async with self._accounts_lock:
            accounts = [_detached(a) for a in self._accounts.values()]
        if predicate is None:
            return accounts
        return [account for account in accounts if predicate(account)]

    async def account_exists(self, account_id: str) -> bool:
        async with self._accounts_lock:
            return account_id in self._accounts

    # =========================================================================
    # Containers
    # =========================================================================

    async def upsert_container(self, payload: Mapping[str, Any]) -> Container:
        """Create a container or merge fields into an existing one.

        The merged record is validated as a whole: name and account_id must
        be present (from the payload or the stored record), the account
        must exist and type must be web or server. Version is not forced to
        increase between writes.

        Args:
            payload: ``{container_id?, name, account_id, type, version?,
                variables?, triggers?, tags?}``

        Returns:
            The stored container

        Raises:
            ValidationFailed: On any invalid field or unknown account
        """
        fields = _known_fields(payload, CONTAINER_FIELDS)
        container_id = fields.get("container_id")
        if container_id is not None:
            container_id = _require_id(container_id, "container_id")

        async with self._containers_lock:
            existing = self._containers.get(container_id) if container_id else None

            name = _require_text(fields.get("name", existing.name if existing else None), "name")
            account_id = _require_text(
                fields.get("account_id", existing.account_id if existing else None),
                "account_id",
            )
            if "type" in fields:
                container_type = coerce_container_type(fields["type"])
            elif existing is not None:
                container_type = existing.type
            else:
                raise ValidationFailed("type required", field_name="type")

            if "version" in fields:
                version = coerce_version(fields["version"])
            else:
                version = existing.version if existing else 1

            lists = {}
            for list_name in ("variables", "triggers", "tags"):
                if list_name in fields:
                    lists[list_name] = _sequence(fields[list_name], list_name)
                else:
                    lists[list_name] = list(getattr(existing, list_name)) if existing else []

            if not await self.account_exists(account_id):
                raise ValidationFailed(f"Unknown account '{account_id}'", field_name="account_id")

            now = self._now()
            if existing is None:
                if container_id is None:
                    container_id = self._ids.generate(
                        CONTAINER_PREFIX, name, self._containers.__contains__
                    )
                record = Container(
                    container_id=container_id,
                    account_id=account_id,
                    type=container_type,
                    name=name,
                    version=version,
                    created_at=now,
                    updated_at=now,
                    **lists,
                )
                logger.debug(f"Created container {container_id} for account {account_id}")
            else:
                record = replace(
                    existing,
                    account_id=account_id,
                    type=container_type,
                    name=name,
                    version=version,
                    updated_at=now,
                    **lists,
                )
                logger.debug(f"Updated container {container_id} to version {version}")

            self._containers[record.container_id] = record
            return _detached(record)

    async def get_container(self, container_id: str) -> Container:
        """Fetch one container.

        Raises:
            ValidationFailed: If the id is blank or not a string
            NotFound: If no container has this id
        """
        container_id = _require_id(container_id, "container_id")
        async with self._containers_lock:
            container = self._containers.get(container_id)
        if container is None:
            raise NotFound(f"Container '{container_id}' not found", "container", container_id)
        return _detached(container)

    async def list_containers(
        self,
        account_id: str | None = None,
        predicate: Callable[[Container], bool] | None = None,
    ) -> list[Container]:
        """Containers in insertion order.

        Args:
            account_id: Keep only containers of this account
            predicate: Extra filter applied after account_id
        """
        async with self._containers_lock:
            containers = [_detached(c) for c in self._containers.values()]
        if account_id is not None:
            containers = [c for c in containers if c.account_id == account_id]
        if predicate is not None:
            containers = [c for c in containers if predicate(c)]
        return containers

    # =========================================================================
    # Events
    # =========================================================================

    async def ingest(self, payload: Mapping[str, Any]) -> Event:
        """Append one event.

        Args:
            payload: ``{event, ts?, user?, context?, biz?}``. A missing ts is
                replaced by the receipt time.

        Returns:
            The stored event, with its generated id

        Raises:
            ValidationFailed: If the event name is missing or a payload
                section is not an object
        """
        if not isinstance(payload, Mapping):
            raise ValidationFailed("payload must be an object", errors=["payload must be an object"])
        name = payload.get("event")
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailed("event required", field_name="event")

        sections = {}
        for section in EVENT_PAYLOAD_FIELDS:
            value = payload.get(section)
            sections[section] = {} if value is None else _mapping(value, section)

        ts = payload.get("ts")
        if ts is None or ts == "":
            ts = self._now()

        event = Event(id=self._event_id_factory(), event=name, ts=ts, **sections)
        async with self._events_lock:
            self._events.append(event)
        logger.debug(f"Ingested event {event.id} ({name})")
        return event

    async def events_snapshot(self) -> list[Event]:
        """Copy of the event list as of this call."""
        async with self._events_lock:
            return list(self._events)

    async def event_count(self) -> int:
        async with self._events_lock:
            return len(self._events)
