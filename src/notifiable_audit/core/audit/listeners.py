"""Automatic audit capture via SQLAlchemy event listeners.

Mapper events on each registered class drive the writer: creates are
audited after the INSERT (so the primary key is known), updates and
destroys before their UPDATE or DELETE. A session-level ``before_flush``
listener runs the checks that must happen before anything is written.
"""

from typing import Any

import structlog
from sqlalchemy import Connection, event, inspect
from sqlalchemy.orm import Mapper, Session

from notifiable_audit.constants import (
    ACTION_CREATE,
    ACTION_DESTROY,
    ACTION_UPDATE,
    AUDIT_COMMENT_FIELD,
    COMMENT_BLANK,
    COMMENT_REQUIRED_BEFORE_DESTROY,
)
from notifiable_audit.core.audit.changes import column_keys
from notifiable_audit.core.audit.context import auditing_enabled
from notifiable_audit.core.audit.registry import AuditConfig, registry
from notifiable_audit.core.audit.writer import AuditWriter
from notifiable_audit.core.errors import RevisionError, ValidationError


log = structlog.get_logger()


def _config_for(target: Any, action: str) -> AuditConfig | None:
    config = registry.config_for(target)
    if config is None or not config.audits(action):
        return None
    return config


def _after_insert(_mapper: Mapper[Any], connection: Connection, target: Any) -> None:
    """Audit a created entity."""
    config = _config_for(target, ACTION_CREATE)
    if config is not None:
        AuditWriter(config, connection).audit_create(target)


def _before_update(_mapper: Mapper[Any], connection: Connection, target: Any) -> None:
    """Audit an entity about to be updated."""
    config = _config_for(target, ACTION_UPDATE)
    if config is not None:
        AuditWriter(config, connection).audit_update(target)


def _before_delete(_mapper: Mapper[Any], connection: Connection, target: Any) -> None:
    """Audit an entity about to be deleted."""
    config = _config_for(target, ACTION_DESTROY)
    if config is not None:
        AuditWriter(config, connection).audit_destroy(target)


_MAPPER_EVENTS = (
    ("after_insert", _after_insert),
    ("before_update", _before_update),
    ("before_delete", _before_delete),
)


def attach_listeners(cls: type) -> None:
    """Attach the audit mapper listeners to a class and its subclasses."""
    for name, listener in _MAPPER_EVENTS:
        if not event.contains(cls, name, listener):
            event.listen(cls, name, listener, propagate=True)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _comment_error(obj: Any, action: str) -> dict[str, str] | None:
    config = _config_for(obj, action)
    if config is None or not config.comment_required or not auditing_enabled(obj):
        return None
    if not _is_blank(getattr(obj, AUDIT_COMMENT_FIELD, None)):
        return None
    message = COMMENT_REQUIRED_BEFORE_DESTROY if action == ACTION_DESTROY else COMMENT_BLANK
    return {"field": AUDIT_COMMENT_FIELD, "message": message, "type": config.type_name}


def _load_snapshot(obj: Any) -> None:
    """Load every column of an entity about to be deleted.

    The destroy audit reads the instance dict during the flush, when
    expired attributes can no longer be refreshed.
    """
    if not registry.is_audited(obj):
        return
    for key in column_keys(inspect(obj).mapper):
        getattr(obj, key)


def _before_flush(
    session: Session,
    _flush_context: Any,
    _instances: Any,
) -> None:
    """Reject revision copies and blank required comments before the flush."""
    for obj in list(session.new) + list(session.dirty):
        if getattr(obj, "_audit_revision", False):
            raise RevisionError(details={"type": type(obj).__name__})

    errors: list[dict[str, str]] = []
    for obj in session.new:
        error = _comment_error(obj, ACTION_CREATE)
        if error:
            errors.append(error)

    for obj in session.dirty:
        if session.is_modified(obj):
            error = _comment_error(obj, ACTION_UPDATE)
            if error:
                errors.append(error)

    for obj in session.deleted:
        error = _comment_error(obj, ACTION_DESTROY)
        if error:
            errors.append(error)

    if errors:
        log.warning("audit_comment_missing", errors=errors)
        raise ValidationError(errors[0]["message"], errors=errors)

    for obj in session.deleted:
        _load_snapshot(obj)


def setup_audit_listeners() -> None:
    """Set up the session-level audit listener.

    Called automatically when the first class is registered; safe to
    call more than once.
    """
    if event.contains(Session, "before_flush", _before_flush):
        return
    event.listen(Session, "before_flush", _before_flush)
    log.info("audit_listeners_installed")
