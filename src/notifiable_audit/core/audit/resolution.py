"""Resolution helpers for titles, receivers and lookups.

``resolve_attribute`` raises ``ResolutionError``; ``try_resolve`` is the
one place those errors are swallowed, so every fallback is an explicit
``None`` at the call site.
"""

from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from notifiable_audit.core.errors import ResolutionError


log = structlog.get_logger()

T = TypeVar("T")


def resolve_attribute(obj: Any, name: str) -> Any:
    """Read an attribute, calling it when it is a method.

    Args:
        obj: Object to read from
        name: Attribute or zero-argument method name

    Returns:
        The attribute value

    Raises:
        ResolutionError: If the attribute is missing or the method fails
    """
    try:
        value = getattr(obj, name)
        if callable(value):
            value = value()
    except Exception as exc:
        raise ResolutionError(
            f"Could not resolve {name!r} on {type(obj).__name__}",
            details={"attribute": name, "type": type(obj).__name__, "error": str(exc)},
        ) from exc
    return value


def try_resolve(resolver: Callable[[], T], what: str) -> T | None:
    """Run a resolver, returning None if it raises ResolutionError.

    Args:
        resolver: Zero-argument callable that may raise ResolutionError
        what: Short label for the log entry (e.g. "title", "receiver")

    Returns:
        The resolved value, or None on failure
    """
    try:
        return resolver()
    except ResolutionError as exc:
        log.warning(
            "audit_resolution_failed",
            what=what,
            error=exc.message,
            details=exc.details,
        )
        return None


def identifier_of(value: Any) -> str | None:
    """String identifier for a receiver or parent.

    Accepts raw identifiers or objects exposing ``id``.
    """
    if value is None:
        return None
    return str(getattr(value, "id", value))
