"""Declarative base for the OIDC provider's SQLAlchemy models."""

from sqlalchemy.orm import DeclarativeBase


class BaseEntity(DeclarativeBase):
    """Base class for all provider database entities."""
