"""Change set extraction for audited entities.

Turns live SQLAlchemy instances into JSON-safe change sets: full
snapshots for creates and destroys, ``[old, new]`` pairs for updates.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper

from notifiable_audit.constants import TIMESTAMP_ATTRIBUTES


def serialize_value(value: Any) -> Any:
    """Serialize a value to JSON-compatible primitives.

    Recursively converts non-JSON-serializable types to their
    string or primitive representations.

    Args:
        value: Any value to serialize

    Returns:
        JSON-serializable representation of the value
    """
    # Pass through JSON primitives
    if value is None or isinstance(value, str | int | float | bool):
        return value

    result: Any
    if isinstance(value, UUID):
        result = str(value)
    elif isinstance(value, datetime | date):
        result = value.isoformat()
    elif isinstance(value, Decimal):
        result = str(value)
    elif isinstance(value, Enum):
        result = value.value
    elif isinstance(value, dict):
        result = {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list | tuple | set | frozenset):
        result = [serialize_value(item) for item in value]
    else:
        result = str(value)

    return result


def deserialize_value(column: Any, value: Any) -> Any:
    """Convert a stored JSON value back to the column's Python type.

    Only the conversions made by ``serialize_value`` are reversed; any
    other value is returned unchanged.

    Args:
        column: The mapped Column the value belongs to
        value: Value read from ``audited_changes``

    Returns:
        The value in the column's Python type where possible
    """
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if isinstance(value, python_type):
        return value

    try:
        if python_type is datetime:
            return datetime.fromisoformat(value)
        if python_type is date:
            return date.fromisoformat(value)
        if python_type is UUID:
            return UUID(value)
        if python_type is Decimal:
            return Decimal(value)
        if issubclass(python_type, Enum):
            return python_type(value)
    except (TypeError, ValueError, ArithmeticError):
        return value
    return value


def extract_changes(
    current: Mapping[str, Any],
    previous: Mapping[str, Any] | None,
    ignored: Iterable[str] = (),
) -> dict[str, Any]:
    """Compute the audit-worthy change set between two attribute maps.

    Args:
        current: Attribute values after the mutation
        previous: Attribute values before the mutation, or None for a create
        ignored: Attribute names that never appear in the result

    Returns:
        The full snapshot of ``current`` when ``previous`` is None,
        otherwise ``{attr: [old, new]}`` for every attribute whose value
        differs. Attributes missing from ``previous`` are compared
        against None.
    """
    ignored = frozenset(ignored)

    if previous is None:
        return {
            attr: serialize_value(value)
            for attr, value in current.items()
            if attr not in ignored
        }

    changes: dict[str, Any] = {}
    for attr, new_value in current.items():
        if attr in ignored:
            continue
        old_value = previous.get(attr)
        if old_value != new_value:
            changes[attr] = [serialize_value(old_value), serialize_value(new_value)]
    return changes


def column_keys(mapper: Mapper[Any]) -> tuple[str, ...]:
    """Attribute keys of every mapped column, in declaration order."""
    return tuple(mapper.columns.keys())


def default_ignored_attributes(mapper: Mapper[Any]) -> set[str]:
    """Attributes that are never audited for a mapped class.

    Primary keys, the inheritance discriminator, the optimistic-lock
    column and the created/updated timestamps.

    Args:
        mapper: The class mapper

    Returns:
        Set of attribute keys
    """
    ignored = set(TIMESTAMP_ATTRIBUTES)
    for key, column in mapper.columns.items():
        if (
            column.primary_key
            or column is mapper.polymorphic_on
            or column is mapper.version_id_col
        ):
            ignored.add(key)
    return ignored


def entity_snapshot(entity: Any, ignored: Iterable[str] = ()) -> dict[str, Any]:
    """Read the loaded column values of an instance.

    Reads the instance dict directly so that unloaded or server-generated
    attributes never trigger a refresh while a flush is in progress.

    Args:
        entity: SQLAlchemy model instance
        ignored: Attribute names to leave out

    Returns:
        Raw (unserialized) attribute values
    """
    ignored = frozenset(ignored)
    state = inspect(entity)
    values = state.dict
    return {
        key: values.get(key)
        for key in column_keys(state.mapper)
        if key not in ignored
    }


def entity_changes(entity: Any, ignored: Iterable[str] = ()) -> dict[str, Any]:
    """Extract pending changes from a modified instance.

    Args:
        entity: SQLAlchemy model instance with unflushed modifications
        ignored: Attribute names to leave out

    Returns:
        Dictionary of changes {attr: [old, new]}
    """
    ignored = frozenset(ignored)
    state = inspect(entity)
    current: dict[str, Any] = {}
    previous: dict[str, Any] = {}

    for key in column_keys(state.mapper):
        if key in ignored:
            continue
        history = state.attrs[key].history
        if not history.has_changes():
            continue
        previous[key] = history.deleted[0] if history.deleted else None
        current[key] = history.added[0] if history.added else None

    return extract_changes(current, previous)


def audited_attributes(entity: Any) -> dict[str, Any]:
    """Serialized snapshot of an instance minus its ignored attributes.

    Args:
        entity: Instance of a registered class

    Returns:
        JSON-safe attribute snapshot
    """
    # Imported here to avoid a cycle with the registry, which uses this module
    from notifiable_audit.core.audit.registry import registry

    config = registry.require_config(entity)
    return extract_changes(entity_snapshot(entity), None, config.ignored_attributes)
