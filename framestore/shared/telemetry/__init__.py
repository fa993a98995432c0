"""Shared telemetry: logging setup."""

from framestore.shared.telemetry.logging import setup_logging

__all__ = [
    "setup_logging",
]
