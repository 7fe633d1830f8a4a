"""Audit repository for database operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import Connection, Select, func, insert, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from notifiable_audit.core.audit.models import Audit
from notifiable_audit.core.audit.registry import registry


def entity_identifier(entity: Any) -> str:
    """Primary key of an instance as stored in ``auditable_id``.

    Composite keys are joined with commas. Uses the identity key when
    the instance has one, else the instance dict, so it never triggers
    a load while a flush is running.
    """
    state = sa_inspect(entity)
    parts = state.identity
    if parts is None:
        values = state.dict
        parts = tuple(
            values.get(key)
            for key, column in state.mapper.columns.items()
            if column.primary_key
        )
    return ",".join(str(part) for part in parts)


class AuditRepository:
    """Repository for Audit database operations.

    Read queries go through a Session; the write helpers take the
    Connection of the flush in progress so records land in the same
    transaction as the mutation that produced them.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _entity_stmt(self, entity: Any) -> Select[tuple[Audit]]:
        return select(Audit).where(
            Audit.auditable_type == registry.tag_for(entity),
            Audit.auditable_id == entity_identifier(entity),
        )

    def for_entity(self, entity: Any) -> list[Audit]:
        """All audits of an entity, ascending by version.

        Args:
            entity: The audited entity

        Returns:
            List of audit records
        """
        stmt = self._entity_stmt(entity).order_by(Audit.version)
        return list(self.session.scalars(stmt).all())

    def from_version(self, entity: Any, version: int) -> list[Audit]:
        """Audits with version >= ``version``, ascending."""
        stmt = (
            self._entity_stmt(entity)
            .where(Audit.version >= version)
            .order_by(Audit.version)
        )
        return list(self.session.scalars(stmt).all())

    def to_version(self, entity: Any, version: int) -> list[Audit]:
        """Audits with version <= ``version``, ascending."""
        stmt = (
            self._entity_stmt(entity)
            .where(Audit.version <= version)
            .order_by(Audit.version)
        )
        return list(self.session.scalars(stmt).all())

    def up_until(self, entity: Any, when: datetime) -> list[Audit]:
        """Audits created at or before ``when``, ascending by version."""
        stmt = (
            self._entity_stmt(entity)
            .where(Audit.created_at <= when)
            .order_by(Audit.version)
        )
        return list(self.session.scalars(stmt).all())

    def descending(self, entity: Any) -> list[Audit]:
        """All audits of an entity, newest first."""
        stmt = self._entity_stmt(entity).order_by(Audit.version.desc())
        return list(self.session.scalars(stmt).all())

    def latest(self, entity: Any) -> Audit | None:
        """The most recent audit of an entity."""
        stmt = self._entity_stmt(entity).order_by(Audit.version.desc()).limit(1)
        return self.session.scalars(stmt).first()

    def associated_audits(self, parent: Any) -> list[Audit]:
        """Audits whose grouping parent is ``parent``, oldest first."""
        stmt = (
            select(Audit)
            .where(
                Audit.associated_type == registry.tag_for(parent),
                Audit.associated_id == entity_identifier(parent),
            )
            .order_by(Audit.created_at, Audit.id)
        )
        return list(self.session.scalars(stmt).all())

    def for_receiver(self, receiver_id: Any, unchecked_only: bool = False) -> list[Audit]:
        """Notifications addressed to a receiver, newest first.

        Args:
            receiver_id: Receiver identifier
            unchecked_only: Only return notifications not yet read

        Returns:
            List of audit records
        """
        stmt = select(Audit).where(Audit.receiver_id == str(receiver_id))
        if unchecked_only:
            stmt = stmt.where(Audit.checked.is_(False))
        stmt = stmt.order_by(Audit.created_at.desc(), Audit.id.desc())
        return list(self.session.scalars(stmt).all())

    @staticmethod
    def next_version(connection: Connection, auditable_type: str, auditable_id: str) -> int:
        """Version number for the next audit of an entity.

        Args:
            connection: Connection of the current flush
            auditable_type: Type tag of the entity
            auditable_id: Identifier of the entity

        Returns:
            1 for the first audit, otherwise the highest version plus one
        """
        stmt = select(func.max(Audit.version)).where(
            Audit.auditable_type == auditable_type,
            Audit.auditable_id == auditable_id,
        )
        current = connection.execute(stmt).scalar()
        return (current or 0) + 1

    @staticmethod
    def insert(connection: Connection, values: dict[str, Any]) -> Any:
        """Insert an audit row and return its primary key."""
        result = connection.execute(insert(Audit).values(**values))
        return result.inserted_primary_key[0]
