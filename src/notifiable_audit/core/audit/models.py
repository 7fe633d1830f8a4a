"""Audit record database model.

Stores one immutable entry per tracked create, update or destroy.
Entries double as notifications when a title and receiver are set.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from notifiable_audit.constants import (
    ACTION_UPDATE,
    MAX_ACTION_LENGTH,
    MAX_IDENTIFIER_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_TYPE_NAME_LENGTH,
)
from notifiable_audit.core.database.base import Base, IntegerIDMixin


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


class Audit(Base, IntegerIDMixin):
    """Audit record for one tracked mutation.

    Attributes:
        auditable_type: Registered type tag of the audited entity
        auditable_id: Primary key of the audited entity, as a string
        associated_type: Type tag of the grouping parent (nullable)
        associated_id: Primary key of the grouping parent (nullable)
        user_id: Acting user set through audit_as (nullable)
        action: create, update or destroy
        audited_changes: {attr: [old, new]} for updates, {attr: value} otherwise
        comment: Notification body
        title: Notification title
        receiver_id: Party the notification is addressed to (nullable)
        version: Per-entity sequence number, starting at 1
        checked: Whether the receiver has read the notification
        created_at: When the record was written
    """

    __tablename__ = "audits"
    __table_args__ = (
        Index("ix_audits_auditable", "auditable_type", "auditable_id", "version"),
        Index("ix_audits_associated", "associated_type", "associated_id"),
    )

    # What was audited
    auditable_type: Mapped[str] = mapped_column(
        String(MAX_TYPE_NAME_LENGTH),
        nullable=False,
    )
    auditable_id: Mapped[str] = mapped_column(
        String(MAX_IDENTIFIER_LENGTH),
        nullable=False,
    )
    associated_type: Mapped[str | None] = mapped_column(
        String(MAX_TYPE_NAME_LENGTH),
        nullable=True,
    )
    associated_id: Mapped[str | None] = mapped_column(
        String(MAX_IDENTIFIER_LENGTH),
        nullable=True,
    )
    user_id: Mapped[str | None] = mapped_column(
        String(MAX_IDENTIFIER_LENGTH),
        nullable=True,
        index=True,
    )

    # What happened
    action: Mapped[str] = mapped_column(
        String(MAX_ACTION_LENGTH),
        nullable=False,
        index=True,
    )
    audited_changes: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    # Notification
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    title: Mapped[str | None] = mapped_column(
        String(MAX_TITLE_LENGTH),
        nullable=True,
    )
    receiver_id: Mapped[str | None] = mapped_column(
        String(MAX_IDENTIFIER_LENGTH),
        nullable=True,
        index=True,
    )
    checked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    @property
    def new_attributes(self) -> dict[str, Any]:
        """Attribute values after this mutation."""
        changes = self.audited_changes or {}
        if self.action == ACTION_UPDATE:
            return {attr: values[1] for attr, values in changes.items()}
        return dict(changes)

    @property
    def old_attributes(self) -> dict[str, Any]:
        """Attribute values before this mutation.

        Create records carry no old side, so their snapshot is returned as is.
        """
        changes = self.audited_changes or {}
        if self.action == ACTION_UPDATE:
            return {attr: values[0] for attr, values in changes.items()}
        return dict(changes)

    def __repr__(self) -> str:
        return (
            f"<Audit(id={self.id}, action={self.action}, "
            f"auditable={self.auditable_type}#{self.auditable_id}, version={self.version})>"
        )
