"""
Store module for TagSoft - the in-memory entity collections.

This module handles:
- Account upsert, lookup and listing
- Container upsert (bound to existing accounts), lookup and filtered listing
- Append-only event ingestion and snapshots for analytics

Invariants:
    - The EntityStore instance exclusively owns all collections
    - Upserts are atomic per call; no partial write is ever visible
    - Events are immutable once ingested
"""

from .entity_store import ACCOUNT_PREFIX, CONTAINER_PREFIX, EntityStore
from .models import Account, Container, ContainerType, Event

__all__ = [
    "ACCOUNT_PREFIX",
    "CONTAINER_PREFIX",
    "EntityStore",
    "Account",
    "Container",
    "ContainerType",
    "Event",
]
