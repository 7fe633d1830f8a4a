"""Audit record writer.

Builds the payload for a create, update or destroy, lets the rule
evaluator override it, and inserts the record through the connection of
the flush in progress. A failed insert raises ``PersistenceError`` and
takes the flush, and the mutation with it, down.
"""

from typing import Any

import structlog
from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, object_session

from notifiable_audit.constants import (
    ACTION_CREATE,
    ACTION_DESTROY,
    ACTION_UPDATE,
    AUDIT_COMMENT_FIELD,
)
from notifiable_audit.core.audit.changes import (
    entity_changes,
    entity_snapshot,
    extract_changes,
)
from notifiable_audit.core.audit.context import auditing_enabled, current_user_id
from notifiable_audit.core.audit.evaluator import NotificationPayload, RuleEvaluator
from notifiable_audit.core.audit.hooks import AuditHooks, audit_hooks
from notifiable_audit.core.audit.models import Audit, utcnow
from notifiable_audit.core.audit.registry import AuditConfig, registry
from notifiable_audit.core.audit.repos import AuditRepository, entity_identifier
from notifiable_audit.core.errors import PersistenceError


log = structlog.get_logger()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class AuditWriter:
    """Writes audit records for one registered type."""

    def __init__(
        self,
        config: AuditConfig,
        connection: Connection,
        session: Session | None = None,
        hooks: AuditHooks | None = None,
    ) -> None:
        self.config = config
        self.connection = connection
        self.session = session
        self.hooks = hooks or audit_hooks

    def _evaluator(self, entity: Any) -> RuleEvaluator:
        return RuleEvaluator(self.config, self.session or object_session(entity))

    def _skip(self, entity: Any, action: str, reason: str) -> None:
        setattr(entity, AUDIT_COMMENT_FIELD, None)
        log.debug(
            "audit_skipped",
            type=self.config.type_name,
            action=action,
            reason=reason,
        )

    def audit_create(self, entity: Any) -> Audit | None:
        """Audit a freshly inserted entity.

        The change set is the full snapshot. Only polymorphic rules apply.
        """
        if not auditing_enabled(entity):
            self._skip(entity, ACTION_CREATE, "disabled")
            return None

        changes = extract_changes(
            entity_snapshot(entity), None, self.config.ignored_attributes
        )
        comment = getattr(entity, AUDIT_COMMENT_FIELD, None)
        evaluator = self._evaluator(entity)
        base = evaluator.default_payload(ACTION_CREATE, changes, entity, comment)
        payload = evaluator.evaluate(
            changes, self.config.rules, entity, action=ACTION_CREATE, base=base
        )
        return self.write(entity, payload or base)

    def audit_update(self, entity: Any) -> Audit | None:
        """Audit an entity about to be updated.

        Skipped when no audited attribute changed and no comment was given.
        """
        if not auditing_enabled(entity):
            self._skip(entity, ACTION_UPDATE, "disabled")
            return None

        changes = entity_changes(entity, self.config.ignored_attributes)
        comment = getattr(entity, AUDIT_COMMENT_FIELD, None)
        if not changes and _is_blank(comment):
            self._skip(entity, ACTION_UPDATE, "no_changes")
            return None

        evaluator = self._evaluator(entity)
        base = evaluator.default_payload(ACTION_UPDATE, changes, entity, comment)
        payload = evaluator.evaluate(
            changes, self.config.rules, entity, action=ACTION_UPDATE, base=base
        )
        return self.write(entity, payload or base)

    def audit_destroy(self, entity: Any) -> Audit | None:
        """Audit an entity about to be deleted.

        Records the full audited snapshot with the supplied comment.
        Rules are not evaluated.
        """
        if not auditing_enabled(entity):
            self._skip(entity, ACTION_DESTROY, "disabled")
            return None

        evaluator = self._evaluator(entity)
        payload = NotificationPayload(
            action=ACTION_DESTROY,
            audited_changes=extract_changes(
                entity_snapshot(entity), None, self.config.ignored_attributes
            ),
            comment=getattr(entity, AUDIT_COMMENT_FIELD, None),
            title=evaluator.default_title(entity),
            receiver_id=evaluator.default_receiver(entity),
        )
        return self.write(entity, payload)

    def write(self, entity: Any, payload: NotificationPayload) -> Audit | None:
        """Persist ``payload`` as the next audit record of ``entity``.

        Clears ``entity.audit_comment`` first, whether or not the record
        is written.

        Args:
            entity: The audited entity
            payload: Record values

        Returns:
            The written record, or None when auditing is disabled

        Raises:
            PersistenceError: If the insert fails
        """
        setattr(entity, AUDIT_COMMENT_FIELD, None)
        if not auditing_enabled(entity):
            log.debug(
                "audit_skipped",
                type=self.config.type_name,
                action=payload.action,
                reason="disabled",
            )
            return None

        auditable_id = entity_identifier(entity)
        values: dict[str, Any] = {
            "auditable_type": self.config.type_name,
            "auditable_id": auditable_id,
            "user_id": current_user_id(),
            "action": payload.action,
            "audited_changes": payload.audited_changes,
            "comment": payload.comment,
            "title": payload.title,
            "receiver_id": payload.receiver_id,
            "checked": payload.checked,
            "created_at": utcnow(),
        }
        values.update(self._associated_values(entity))

        record = Audit(**values)

        def persist() -> Audit:
            try:
                values["version"] = AuditRepository.next_version(
                    self.connection, self.config.type_name, auditable_id
                )
                record.version = values["version"]
                record.id = AuditRepository.insert(self.connection, values)
            except SQLAlchemyError as exc:
                log.error(
                    "audit_write_failed",
                    type=self.config.type_name,
                    auditable_id=auditable_id,
                    action=payload.action,
                    error=str(exc),
                )
                raise PersistenceError(
                    "Audit insert failed",
                    details={
                        "type": self.config.type_name,
                        "auditable_id": auditable_id,
                        "error": str(exc),
                    },
                ) from exc
            return record

        written = self.hooks.run(entity, record, persist)

        log.info(
            "audit_written",
            type=self.config.type_name,
            auditable_id=auditable_id,
            action=payload.action,
            version=written.version,
            rule=payload.rule.kind if payload.rule else None,
            receiver_id=payload.receiver_id,
        )
        return written

    def _associated_values(self, entity: Any) -> dict[str, Any]:
        if self.config.associated_with is None:
            return {}
        parent = getattr(entity, self.config.associated_with)
        if parent is None:
            return {}
        return {
            "associated_type": registry.tag_for(parent),
            "associated_id": entity_identifier(parent),
        }
