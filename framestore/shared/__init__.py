"""Shared cross-cutting helpers (logging, datetime, request context)."""
