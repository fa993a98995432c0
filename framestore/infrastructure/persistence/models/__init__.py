"""ORM models (import here so Base.metadata sees every table)."""

from framestore.infrastructure.persistence.models.photo import Photo

__all__ = ["Photo"]
