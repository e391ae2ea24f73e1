"""Shared database models."""

from app.shared.models.base import BaseModel, TimestampMixin, ExternalIdMixin

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "ExternalIdMixin",
]
