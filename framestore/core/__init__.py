"""Core: config, limiter, exception handlers, and application bootstrap."""

from framestore.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
