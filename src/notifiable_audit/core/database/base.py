"""SQLAlchemy declarative base and common mixins."""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column


if TYPE_CHECKING:
    from notifiable_audit.core.audit.models import Audit


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class IntegerIDMixin:
    """Mixin that adds an autoincrementing integer primary key."""

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
    )


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class AuditedMixin:
    """Instance helpers for models registered with ``notifiably_audited``.

    Inheriting from this mixin does not enable auditing by itself; the
    class still has to be registered. It gives instances the transient
    ``audit_comment`` field read by the audit writer, plus shortcuts to
    the revision and toggle helpers.

    Example:
        @notifiably_audited(alert_for=[...])
        class Order(Base, IntegerIDMixin, AuditedMixin):
            __tablename__ = "orders"
            status: Mapped[str] = mapped_column(String(50))
    """

    # Plain class attributes, not mapped columns
    audit_comment = None
    audit_version = None
    _audit_revision = False

    @property
    def is_audit_revision(self) -> bool:
        """True for detached copies built by the revision helpers."""
        return self._audit_revision

    def audited_attributes(self) -> dict[str, Any]:
        """Current attribute values minus the ignored columns."""
        from notifiable_audit.core.audit.changes import audited_attributes

        return audited_attributes(self)

    def audits(self, session: Session) -> list["Audit"]:
        """All audit records for this entity, oldest first."""
        from notifiable_audit.core.audit.repos import AuditRepository

        return AuditRepository(session).for_entity(self)

    def revision(self, session: Session, version: int | str) -> Any:
        """Reconstruct this entity as of ``version`` (or ``"previous"``)."""
        from notifiable_audit.core.audit.revisions import revision

        return revision(session, self, version)

    def revisions(self, session: Session, from_version: int = 1) -> list[Any]:
        """Reconstruct every revision from ``from_version`` onward."""
        from notifiable_audit.core.audit.revisions import revisions

        return revisions(session, self, from_version)

    def revision_at(self, session: Session, when: datetime) -> Any:
        """Reconstruct this entity as it was at ``when``."""
        from notifiable_audit.core.audit.revisions import revision_at

        return revision_at(session, self, when)

    def save_without_auditing(self, session: Session) -> None:
        """Add and flush this entity with auditing off for its type."""
        from notifiable_audit.core.audit.context import save_without_auditing

        save_without_auditing(session, self)
