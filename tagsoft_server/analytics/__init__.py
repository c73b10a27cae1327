"""
Analytics module for TagSoft.

Aggregates are recomputed from the full event list on each read.
"""

from .aggregator import (
    Aggregator,
    Overview,
    compute_overview,
    count_by_event,
    parse_event_time,
    top_event,
)

__all__ = [
    "Aggregator",
    "Overview",
    "compute_overview",
    "count_by_event",
    "parse_event_time",
    "top_event",
]
