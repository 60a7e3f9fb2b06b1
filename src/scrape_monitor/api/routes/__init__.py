"""API route handlers."""

from . import dashboard, health

__all__ = [
    "dashboard",
    "health",
]
