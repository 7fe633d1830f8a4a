"""Database layer - declarative base and mixins."""

from notifiable_audit.core.database.base import (
    AuditedMixin,
    Base,
    IntegerIDMixin,
    TimestampMixin,
)


__all__ = [
    "AuditedMixin",
    "Base",
    "IntegerIDMixin",
    "TimestampMixin",
]
