"""Notification rule evaluation.

Rules are checked in declaration order and evaluation stops at the first
rule that fires. Creates only consider polymorphic rules; updates
consider both kinds. When nothing fires the caller writes the default
payload built by ``RuleEvaluator.default_payload``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

import structlog
from sqlalchemy.orm import Session

from notifiable_audit.constants import ACTION_CREATE, ACTION_UPDATE
from notifiable_audit.core.audit.formatting import (
    append_lookup,
    format_template,
    polymorphic_title,
    truncate_comment,
)
from notifiable_audit.core.audit.registry import AuditConfig, TypeRegistry, registry
from notifiable_audit.core.audit.resolution import (
    identifier_of,
    resolve_attribute,
    try_resolve,
)
from notifiable_audit.core.audit.rules import (
    AttributeSetRule,
    ChangeRule,
    PolymorphicRule,
    RuleSet,
)


log = structlog.get_logger()


@dataclass(frozen=True)
class NotificationPayload:
    """Values of the audit record about to be written.

    Attributes:
        action: create, update or destroy
        audited_changes: Change set or snapshot
        comment: Notification body
        title: Notification title
        receiver_id: Receiver identifier, if any
        checked: Read flag, always False for new records
        rule: The rule that produced this payload, None for the default
    """

    action: str
    audited_changes: dict[str, Any]
    comment: str | None
    title: str | None
    receiver_id: str | None
    checked: bool = False
    rule: ChangeRule | None = None


class RuleEvaluator:
    """Evaluates the rule set of one audited type against a mutation.

    Lookups go through ``session``; during a flush this is the session
    being flushed, so parents already in its identity map are reused.
    """

    def __init__(
        self,
        config: AuditConfig,
        session: Session,
        types: TypeRegistry | None = None,
    ) -> None:
        self.config = config
        self.session = session
        self.types = types or registry

    def default_title(self, entity: Any) -> str:
        """Entity title, falling back to the type name."""
        title = try_resolve(
            lambda: resolve_attribute(entity, self.config.title_attribute),
            what="title",
        )
        return self.config.type_name if title is None else str(title)

    def default_receiver(self, entity: Any) -> str | None:
        """Entity receiver id, falling back to None."""
        receiver = try_resolve(
            lambda: resolve_attribute(entity, self.config.receiver_attribute),
            what="receiver",
        )
        return identifier_of(receiver)

    def default_payload(
        self,
        action: str,
        changes: dict[str, Any],
        entity: Any,
        comment: str | None = None,
    ) -> NotificationPayload:
        """Payload written when no rule fires.

        An explicit comment wins over the configured template.
        """
        if not comment:
            template = (
                self.config.create_comment
                if action == ACTION_CREATE
                else self.config.update_comment
            )
            comment = format_template(template, self.config.type_name)
        return NotificationPayload(
            action=action,
            audited_changes=changes,
            comment=comment,
            title=self.default_title(entity),
            receiver_id=self.default_receiver(entity),
        )

    def evaluate(
        self,
        change_set: Mapping[str, Any],
        rule_set: RuleSet,
        entity: Any,
        action: str = ACTION_UPDATE,
        base: NotificationPayload | None = None,
    ) -> NotificationPayload | None:
        """Return the payload of the first rule that fires, or None.

        Args:
            change_set: Changes of this mutation
            rule_set: Ordered rules
            entity: The mutated entity
            action: create or update
            base: Default payload the rule overrides; built when omitted

        Returns:
            The winning payload, or None if no rule fires
        """
        if base is None:
            base = self.default_payload(action, dict(change_set), entity)

        for index, rule in enumerate(rule_set.rules):
            if isinstance(rule, PolymorphicRule):
                payload = self._apply_polymorphic(rule, base, entity)
            elif action == ACTION_UPDATE:
                payload = self._apply_attribute_set(rule, base, change_set)
            else:
                continue

            if payload is not None:
                log.info(
                    "audit_rule_matched",
                    type=self.config.type_name,
                    rule=rule.kind,
                    index=index,
                    action=action,
                )
                return payload

        return None

    def _apply_polymorphic(
        self,
        rule: PolymorphicRule,
        base: NotificationPayload,
        entity: Any,
    ) -> NotificationPayload:
        content = try_resolve(
            lambda: resolve_attribute(entity, rule.content_attribute),
            what="content",
        )
        base_title = rule.title or base.title or self.config.type_name
        parent = self._resolve_parent(rule, entity)

        if parent is None:
            title = base_title
            receiver_id = None
        else:
            parent_config = self.types.config_for(parent) or self.config
            display = try_resolve(
                lambda: resolve_attribute(parent, parent_config.title_attribute),
                what="parent_title",
            )
            title = polymorphic_title(
                base_title,
                self.types.tag_for(parent),
                "" if display is None else display,
            )
            receiver_id = identifier_of(
                try_resolve(
                    lambda: resolve_attribute(parent, parent_config.receiver_attribute),
                    what="parent_receiver",
                )
            )

        return replace(
            base,
            title=title,
            comment=truncate_comment(content),
            receiver_id=receiver_id,
            rule=rule,
        )

    def _resolve_parent(self, rule: PolymorphicRule, entity: Any) -> Any:
        def load() -> Any:
            tag = resolve_attribute(entity, rule.type_attribute)
            ident = resolve_attribute(entity, rule.id_attribute)
            return self.types.load(self.session, str(tag), ident)

        return try_resolve(load, what="polymorphic_parent")

    def _apply_attribute_set(
        self,
        rule: AttributeSetRule,
        base: NotificationPayload,
        change_set: Mapping[str, Any],
    ) -> NotificationPayload | None:
        if not rule.matches(set(change_set)):
            return None

        title = rule.title if rule.title is not None else base.title
        lookup = rule.foreign_lookup
        if lookup is not None:
            _, foreign_key = change_set[rule.attributes[0]]

            def display() -> Any:
                associated = self.types.load(self.session, lookup.type, foreign_key)
                return resolve_attribute(associated, lookup.display_attribute)

            value = try_resolve(display, what="foreign_lookup")
            if value is not None and title is not None:
                title = append_lookup(title, value)

        return replace(base, title=title, comment=rule.body, rule=rule)


def evaluate(
    change_set: Mapping[str, Any],
    rule_set: RuleSet,
    entity: Any,
    session: Session,
    action: str = ACTION_UPDATE,
) -> NotificationPayload | None:
    """Evaluate ``rule_set`` for an instance of a registered class.

    Convenience wrapper around ``RuleEvaluator`` using the global registry.
    """
    config = registry.require_config(entity)
    return RuleEvaluator(config, session).evaluate(change_set, rule_set, entity, action)
