"""
On-demand aggregation over ingested events.

Every call recomputes from a snapshot of the event list; no running totals
are kept between calls.

Invariants:
    - total_events counts every event, parsable ts or not
    - last24h counts events with now - window < ts <= now; an event exactly
      one window old is out
    - Events whose ts cannot be parsed are left out of last24h, never raise
    - by_event keys appear in first-seen order
    - top_event ties go to the name seen first
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ..store import EntityStore, Event

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


@dataclass
class Overview:
    """Aggregate counts over the event collection."""

    total_events: int
    last24h: int
    by_event: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "last24h": self.last24h,
            "by_event": dict(self.by_event),
        }


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_event_time(ts: Any) -> datetime | None:
    """Parse an event timestamp, or return None if it is unusable.

    Accepts ISO-8601 strings (a trailing ``Z`` means UTC), datetimes and
    Unix epoch milliseconds. Naive values are taken as UTC.
    """
    if isinstance(ts, datetime):
        return _as_utc(ts)
    if isinstance(ts, bool):
        return None
    if isinstance(ts, (int, float)):
        try:
            return datetime.fromtimestamp(ts / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(ts, str):
        text = ts.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def count_by_event(events: Iterable[Event]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for event in events:
        counts[event.event] = counts.get(event.event, 0) + 1
    return counts


def compute_overview(
    events: list[Event],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> Overview:
    """Build an Overview from a list of events in one pass."""
    now = _as_utc(now)
    since = now - window
    by_event: dict[str, int] = {}
    recent = 0
    unparsable = 0

    for event in events:
        by_event[event.event] = by_event.get(event.event, 0) + 1
        when = parse_event_time(event.ts)
        if when is None:
            unparsable += 1
        elif since < when <= now:
            recent += 1

    if unparsable:
        logger.debug(f"Skipped {unparsable} events with unparsable ts in window count")

    return Overview(total_events=len(events), last24h=recent, by_event=by_event)


def top_event(events: Iterable[Event]) -> tuple[str, int] | None:
    """Most frequent event name and its count; first seen wins ties."""
    best: tuple[str, int] | None = None
    for name, count in count_by_event(events).items():
        if best is None or count > best[1]:
            best = (name, count)
    return best


class Aggregator:
    """Reads events from a store and summarizes them.

    Args:
        store: Entity store to read events from
        window: Width of the recent-events window
    """

    def __init__(self, store: EntityStore, window: timedelta = DEFAULT_WINDOW) -> None:
        self.store = store
        self.window = window

    async def overview(self, now: datetime | None = None) -> Overview:
        events = await self.store.events_snapshot()
        return compute_overview(events, now or datetime.now(timezone.utc), self.window)

    async def top_event(self) -> tuple[str, int] | None:
        return top_event(await self.store.events_snapshot())
