"""notifiable-audit: audit trails and change notifications for SQLAlchemy."""

from notifiable_audit.core.audit import (
    AttributeSetRule,
    Audit,
    AuditRepository,
    ForeignLookup,
    PolymorphicRule,
    audit_as,
    audit_hooks,
    notifiably_audited,
    register_type,
    without_auditing,
)
from notifiable_audit.core.database import AuditedMixin, Base, IntegerIDMixin, TimestampMixin


__version__ = "0.1.0"

__all__ = [
    "AttributeSetRule",
    "Audit",
    "AuditRepository",
    "AuditedMixin",
    "Base",
    "ForeignLookup",
    "IntegerIDMixin",
    "PolymorphicRule",
    "TimestampMixin",
    "audit_as",
    "audit_hooks",
    "notifiably_audited",
    "register_type",
    "without_auditing",
]
