"""SQLAlchemy repositories."""

from framestore.infrastructure.persistence.repositories.photo_repo import PhotoRepository

__all__ = ["PhotoRepository"]
