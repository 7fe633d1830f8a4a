"""Revision reconstruction from audit records.

A revision is rebuilt by folding audits forward: starting from an empty
map, each audit up to the target version, in ascending order, merges its
"new" values. The result is laid over a detached copy of the live
entity, so attributes no audit mentions keep their current value.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from notifiable_audit.constants import PREVIOUS_VERSION
from notifiable_audit.core.audit.changes import column_keys, deserialize_value
from notifiable_audit.core.audit.models import Audit
from notifiable_audit.core.audit.repos import AuditRepository


def reconstruct_attributes(
    audits: Iterable[Audit],
    base: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Fold audits, oldest first, into an attribute map.

    Args:
        audits: Audit records in ascending version order
        base: Attribute map to start from, e.g. an earlier reconstruction

    Returns:
        Attribute values after the last audit
    """
    attributes = dict(base or {})
    for audit in audits:
        attributes.update(audit.new_attributes)
    return attributes


def build_revision(entity: Any, attributes: Mapping[str, Any], version: int) -> Any:
    """Detached copy of ``entity`` carrying reconstructed attribute values.

    Column values are copied from the live entity and then overlaid with
    ``attributes``. Relationships are not copied and stay unloaded, so
    they never point at the entity's current associations.

    Args:
        entity: The live entity
        attributes: Reconstructed values (serialized form)
        version: Version the revision represents

    Returns:
        A transient instance flagged as a revision
    """
    mapper = inspect(entity).mapper
    revision = mapper.class_manager.new_instance()

    for key in column_keys(mapper):
        value = getattr(entity, key)
        if key in attributes:
            value = deserialize_value(mapper.columns[key], attributes[key])
        set_committed_value(revision, key, value)

    revision.audit_version = version
    revision._audit_revision = True
    return revision


def _previous_version(repo: AuditRepository, entity: Any) -> int:
    current = getattr(entity, "audit_version", None)
    if current:
        return current - 1
    audits = repo.descending(entity)
    return audits[1].version if len(audits) > 1 else 1


def revision(session: Session, entity: Any, version: int | str) -> Any:
    """Reconstruct ``entity`` as of ``version``.

    Args:
        session: Session to read audits with
        entity: The live entity
        version: Target version, or ``"previous"`` for one before the
            entity's ``audit_version`` (or before its latest audit)

    Returns:
        The revision, or None when no audit exists at or before the target
    """
    repo = AuditRepository(session)
    if version == PREVIOUS_VERSION:
        version = _previous_version(repo, entity)

    audits = repo.to_version(entity, int(version))
    if not audits:
        return None
    return build_revision(entity, reconstruct_attributes(audits), audits[-1].version)


def revisions(session: Session, entity: Any, from_version: int = 1) -> list[Any]:
    """Every revision of ``entity`` from ``from_version`` onward.

    Args:
        session: Session to read audits with
        entity: The live entity
        from_version: First version to include

    Returns:
        Revisions in ascending version order, empty when there are none
    """
    result: list[Any] = []
    attributes: dict[str, Any] = {}
    for audit in AuditRepository(session).for_entity(entity):
        attributes = reconstruct_attributes([audit], attributes)
        if audit.version >= from_version:
            result.append(build_revision(entity, attributes, audit.version))
    return result


def revision_at(session: Session, entity: Any, when: datetime) -> Any:
    """Reconstruct ``entity`` from the audits created at or before ``when``.

    Returns:
        The revision, or None when no audit is that old
    """
    audits = AuditRepository(session).up_until(entity, when)
    if not audits:
        return None
    return build_revision(entity, reconstruct_attributes(audits), audits[-1].version)
