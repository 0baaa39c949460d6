"""Core module - Settings, logging, and shared exceptions."""

from goplanit.core.config import settings

__all__ = [
    "settings",
]
