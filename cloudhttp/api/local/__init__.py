"""
Local emulation package.

Serves an API in-process for development and tests.
"""

from .app import create_local_app, serve_local

__all__ = [
    "create_local_app",
    "serve_local",
]
