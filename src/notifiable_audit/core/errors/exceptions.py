"""Domain exceptions for the audit engine.

Validation and persistence failures propagate to the caller and abort the
flush that triggered them. Resolution failures are raised only inside the
resolution helpers and are always recovered there.
"""

from typing import Any


class AuditException(Exception):
    """Base exception for all audit errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional error details
    """

    message: str = "An unexpected audit error occurred"
    error_code: str = "audit_error"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AuditException):
    """Raised when an audited entity fails a pre-flush check.

    Example:
        raise ValidationError(
            "Comment required",
            errors=[{"field": "audit_comment", "message": "can't be blank"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)

    @property
    def errors(self) -> list[dict[str, Any]]:
        """Field-level errors attached to this exception."""
        return self.details.get("errors", [])


class ResolutionError(AuditException):
    """Raised when a title, receiver or lookup target cannot be resolved.

    Example:
        raise ResolutionError("Unknown type", details={"type": "Widget"})
    """

    message = "Could not resolve value"
    error_code = "resolution_error"


class PersistenceError(AuditException):
    """Raised when an audit record cannot be written.

    Example:
        raise PersistenceError("Audit insert failed", details={"error": str(exc)})
    """

    message = "Audit record could not be persisted"
    error_code = "persistence_error"


class ConfigurationError(AuditException):
    """Raised when a type is registered with invalid audit options.

    Example:
        raise ConfigurationError(
            "Unknown watched attribute",
            details={"type": "Order", "attribute": "colour"}
        )
    """

    message = "Invalid audit configuration"
    error_code = "configuration_error"


class RevisionError(AuditException):
    """Raised when a reconstructed revision is about to be persisted."""

    message = "Revisions are read-only and cannot be persisted"
    error_code = "revision_read_only"
