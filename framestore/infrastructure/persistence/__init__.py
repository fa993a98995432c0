"""Persistence: SQLAlchemy async engine, models, repositories."""
