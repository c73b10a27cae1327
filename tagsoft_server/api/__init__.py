"""
API module for TagSoft server.

Provides the HTTP/JSON interface. Handlers only translate between JSON and
store/aggregator calls; all rules live in the core modules.

How to change safely:
    - Add new routes to routes.py behind the router-level API key check
    - Keep the error body shape stable; clients match on error_code
"""

from .app import create_app
from .routes import router

__all__ = [
    "create_app",
    "router",
]
