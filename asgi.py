"""
asgi.py -- ASGI entry point for AuthGate.

Run with:  uvicorn asgi:app --reload

Kept separate from api/main.py so process managers point at one stable
module path while the application module stays free to grow.
"""

from api.main import app

__all__ = ["app"]
