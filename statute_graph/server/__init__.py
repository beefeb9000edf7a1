"""HTTP server components for the statute graph explorer."""

from .websocket import ConnectionManager

__all__ = [
    "ConnectionManager",
]
