"""
TagSoft Server - event ingestion and lightweight analytics for tag management.

Clients register accounts and containers (tag configurations bound to an
account), stream behavioral events and query aggregate counts.

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌──────────────┐
    │   Client    │────▶│ Access Gate │────▶│ Entity Store │
    │  (x-api-key)│     │  (api key)  │     │ accounts     │
    └─────────────┘     └─────────────┘     │ containers   │
                                            │ events       │
                                            └──────┬───────┘
                                                   │ snapshot
                                                   ▼
                                            ┌──────────────┐
                                            │  Aggregator  │
                                            └──────────────┘

Invariants:
    - The entity store is the only owner of the collections
    - Every API call except health is authorized before touching the store
    - Analytics are recomputed from the full event list on each read
    - Nothing is persisted; state lives for the process lifetime
"""

from ._version import __version__

__all__ = ["__version__"]
