"""Audit trail and change notifications for SQLAlchemy models.

Provides:
- Audit model for storing audit records
- notifiably_audited registration with notification rules
- Automatic capture via SQLAlchemy event listeners
- Revision reconstruction from stored audits
"""

from notifiable_audit.core.audit.context import (
    audit_as,
    auditing_enabled,
    current_user_id,
    disable_auditing,
    enable_auditing,
    save_without_auditing,
    without_auditing,
)
from notifiable_audit.core.audit.evaluator import NotificationPayload, RuleEvaluator, evaluate
from notifiable_audit.core.audit.hooks import AuditHooks, audit_hooks
from notifiable_audit.core.audit.listeners import setup_audit_listeners
from notifiable_audit.core.audit.models import Audit
from notifiable_audit.core.audit.registry import (
    AuditConfig,
    TypeRegistry,
    has_associated_audits,
    notifiably_audited,
    register_type,
    registry,
)
from notifiable_audit.core.audit.repos import AuditRepository
from notifiable_audit.core.audit.revisions import (
    reconstruct_attributes,
    revision,
    revision_at,
    revisions,
)
from notifiable_audit.core.audit.rules import (
    AttributeSetRule,
    ForeignLookup,
    PolymorphicRule,
    RuleSet,
)
from notifiable_audit.core.audit.writer import AuditWriter


__all__ = [
    "AttributeSetRule",
    "Audit",
    "AuditConfig",
    "AuditHooks",
    "AuditRepository",
    "AuditWriter",
    "ForeignLookup",
    "NotificationPayload",
    "PolymorphicRule",
    "RuleEvaluator",
    "RuleSet",
    "TypeRegistry",
    "audit_as",
    "audit_hooks",
    "auditing_enabled",
    "current_user_id",
    "disable_auditing",
    "enable_auditing",
    "evaluate",
    "has_associated_audits",
    "notifiably_audited",
    "reconstruct_attributes",
    "register_type",
    "registry",
    "revision",
    "revision_at",
    "revisions",
    "save_without_auditing",
    "setup_audit_listeners",
    "without_auditing",
]
