"""
Shared fixtures for TagSoft tests.
"""

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class ScriptedRandom:
    """Stand-in random source that yields the characters of given suffixes."""

    def __init__(self, *suffixes: str) -> None:
        self._chars = iter("".join(suffixes))

    def choice(self, seq):
        char = next(self._chars)
        assert char in seq
        return char


@pytest.fixture
def clock():
    """Clock fixed at 2024-05-01 12:00 UTC."""
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def scripted_random():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom
