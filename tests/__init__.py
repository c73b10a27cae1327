"""
TagSoft Test Suite.

This package contains:
- unit/: Unit tests for the core modules (no network, no app)
- integration/: HTTP API tests through FastAPI's TestClient
"""
