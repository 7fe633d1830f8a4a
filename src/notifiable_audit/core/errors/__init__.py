"""Error types raised by the audit engine."""

from notifiable_audit.core.errors.exceptions import (
    AuditException,
    ConfigurationError,
    PersistenceError,
    ResolutionError,
    RevisionError,
    ValidationError,
)


__all__ = [
    "AuditException",
    "ConfigurationError",
    "PersistenceError",
    "ResolutionError",
    "RevisionError",
    "ValidationError",
]
