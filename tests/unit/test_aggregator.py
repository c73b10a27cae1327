"""
Unit tests for event aggregation.

Tests cover:
- Overview counts and the 24h window boundaries
- Unparsable timestamps
- Top event tie-breaking
- Timestamp parsing
"""

from datetime import datetime, timedelta, timezone

import pytest

from tagsoft_server.analytics import Aggregator, compute_overview, parse_event_time, top_event
from tagsoft_server.store import EntityStore, Event

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_events(*pairs):
    return [Event(id=f"e{i}", event=name, ts=ts) for i, (name, ts) in enumerate(pairs)]


class TestComputeOverview:
    """Tests for compute_overview()."""

    def test_events_at_now(self):
        ts = NOW.isoformat()
        events = make_events(("view", ts), ("view", ts), ("click", ts))

        overview = compute_overview(events, NOW)

        assert overview.to_dict() == {
            "total_events": 3,
            "last24h": 3,
            "by_event": {"view": 2, "click": 1},
        }

    def test_old_event_outside_window(self):
        old = (NOW - timedelta(hours=25)).isoformat()
        events = make_events(("view", NOW.isoformat()), ("signup", old))

        overview = compute_overview(events, NOW)

        assert overview.total_events == 2
        assert overview.last24h == 1
        assert overview.by_event == {"view": 1, "signup": 1}

    def test_window_edges(self):
        """Start of the window is open, now is closed."""
        events = make_events(
            ("edge", (NOW - timedelta(hours=24)).isoformat()),
            ("just_in", (NOW - timedelta(hours=23, minutes=59, seconds=59)).isoformat()),
            ("just_out", (NOW - timedelta(hours=24, seconds=1)).isoformat()),
            ("now", NOW.isoformat()),
            ("future", (NOW + timedelta(seconds=1)).isoformat()),
        )

        assert compute_overview(events, NOW).last24h == 2

    def test_event_exactly_one_window_old_is_excluded(self):
        events = make_events(("view", (NOW - timedelta(hours=24)).isoformat()))

        overview = compute_overview(events, NOW)

        assert overview.last24h == 0
        assert overview.total_events == 1

    def test_unparsable_ts_counted_but_not_windowed(self):
        events = make_events(("view", "yesterday-ish"), ("view", None), ("view", {"t": 1}), ("view", NOW.isoformat()))

        overview = compute_overview(events, NOW)

        assert overview.total_events == 4
        assert overview.last24h == 1
        assert overview.by_event == {"view": 4}

    def test_custom_window(self):
        events = make_events(("view", (NOW - timedelta(hours=2)).isoformat()))

        assert compute_overview(events, NOW, window=timedelta(hours=1)).last24h == 0

    def test_empty(self):
        assert compute_overview([], NOW).to_dict() == {"total_events": 0, "last24h": 0, "by_event": {}}


class TestTopEvent:
    """Tests for top_event()."""

    def test_highest_count_wins(self):
        events = make_events(("view", None), ("click", None), ("click", None))

        assert top_event(events) == ("click", 2)

    def test_tie_goes_to_first_seen(self):
        events = make_events(("zoom", None), ("alpha", None), ("alpha", None), ("zoom", None))

        assert top_event(events) == ("zoom", 2)

    def test_empty(self):
        assert top_event([]) is None


class TestParseEventTime:
    """Tests for parse_event_time()."""

    @pytest.mark.parametrize(
        "value",
        [
            "2024-05-01T12:00:00Z",
            "2024-05-01T12:00:00+00:00",
            "2024-05-01T14:00:00+02:00",
            "2024-05-01T12:00:00",
            1714564800000,
            1714564800000.0,
            datetime(2024, 5, 1, 12, 0),
        ],
    )
    def test_equivalent_forms(self, value):
        assert parse_event_time(value) == NOW

    @pytest.mark.parametrize("value", ["", "not a date", None, True, [], {}, float("inf")])
    def test_unusable_values(self, value):
        assert parse_event_time(value) is None


class TestAggregator:
    """Tests for Aggregator over a live store."""

    @pytest.mark.asyncio
    async def test_overview_reads_store(self):
        store = EntityStore()
        aggregator = Aggregator(store)
        await store.ingest({"event": "view", "ts": NOW.isoformat()})
        await store.ingest({"event": "view", "ts": (NOW - timedelta(days=3)).isoformat()})

        overview = await aggregator.overview(now=NOW)

        assert overview.to_dict() == {"total_events": 2, "last24h": 1, "by_event": {"view": 2}}

    @pytest.mark.asyncio
    async def test_recomputes_each_call(self):
        store = EntityStore()
        aggregator = Aggregator(store)

        assert (await aggregator.overview(now=NOW)).total_events == 0
        await store.ingest({"event": "click", "ts": NOW.isoformat()})
        assert (await aggregator.overview(now=NOW)).total_events == 1
        assert await aggregator.top_event() == ("click", 1)
