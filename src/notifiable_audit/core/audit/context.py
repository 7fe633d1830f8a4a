"""Execution context for auditing.

The per-type enabled flags and the acting user live in ContextVars, so
a ``without_auditing`` or ``audit_as`` scope only affects the current
thread or asyncio task. Flags are copied on write; a scope never leaks
into tasks that were started before it.
"""

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from sqlalchemy.orm import Session

from notifiable_audit.config import get_settings
from notifiable_audit.core.audit.registry import registry


_auditing_flags: ContextVar[dict[type, bool] | None] = ContextVar(
    "auditing_flags", default=None
)
_audit_user: ContextVar[str | None] = ContextVar("audit_user", default=None)


def _flag_key(cls_or_entity: Any) -> type:
    """Registered class that owns the flag for a class or instance."""
    cls = cls_or_entity if isinstance(cls_or_entity, type) else type(cls_or_entity)
    config = registry.config_for(cls)
    return config.model if config else cls


def _set_flag(cls_or_entity: Any, enabled: bool) -> None:
    flags = dict(_auditing_flags.get() or {})
    flags[_flag_key(cls_or_entity)] = enabled
    _auditing_flags.set(flags)


def auditing_enabled(cls_or_entity: Any) -> bool:
    """Check whether audits are written for a type in the current context.

    Args:
        cls_or_entity: Registered class, subclass, or instance

    Returns:
        The context flag, or the configured default when unset
    """
    flags = _auditing_flags.get() or {}
    return flags.get(_flag_key(cls_or_entity), get_settings().enabled_by_default)


def enable_auditing(cls_or_entity: Any) -> None:
    """Turn auditing on for a type in the current context."""
    _set_flag(cls_or_entity, True)


def disable_auditing(cls_or_entity: Any) -> None:
    """Turn auditing off for a type in the current context."""
    _set_flag(cls_or_entity, False)


@contextmanager
def without_auditing(cls_or_entity: Any) -> Generator[None, None, None]:
    """Run the block with auditing disabled for a type.

    On exit auditing is switched back on only if it was on when the
    block was entered.

    Example:
        with without_auditing(Order):
            order.status = "archived"
            session.flush()
    """
    was_enabled = auditing_enabled(cls_or_entity)
    disable_auditing(cls_or_entity)
    try:
        yield
    finally:
        if was_enabled:
            enable_auditing(cls_or_entity)


def save_without_auditing(session: Session, entity: Any) -> None:
    """Add and flush an entity with auditing disabled for its type."""
    with without_auditing(entity):
        session.add(entity)
        session.flush()


def _user_key(user: Any) -> str | None:
    if user is None:
        return None
    return str(getattr(user, "id", user))


@contextmanager
def audit_as(user: Any) -> Generator[None, None, None]:
    """Attribute every audit written in the block to ``user``.

    Args:
        user: A user object with an ``id`` attribute, or a raw identifier
    """
    token = _audit_user.set(_user_key(user))
    try:
        yield
    finally:
        _audit_user.reset(token)


def current_user_id() -> str | None:
    """Identifier of the acting user, if an ``audit_as`` scope is active."""
    return _audit_user.get()
