"""Type registry and audit registration.

Every audited class gets an ``AuditConfig`` that is validated and frozen
when the class is registered. The registry also maps type tags to loader
functions, which is how polymorphic parents and foreign lookups are
resolved without reflecting on class names at call time.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import pydantic
import structlog
from sqlalchemy import event, inspect
from sqlalchemy.orm import Mapper, Session

from notifiable_audit.config import get_settings
from notifiable_audit.constants import AUDIT_ACTIONS, AUDIT_COMMENT_FIELD
from notifiable_audit.core.audit.changes import column_keys, default_ignored_attributes
from notifiable_audit.core.audit.rules import (
    AttributeSetRule,
    PolymorphicRule,
    RuleSet,
    parse_rules,
)
from notifiable_audit.core.errors import ConfigurationError, ResolutionError


log = structlog.get_logger()

Loader = Callable[[Session, Any], Any]
ModelT = TypeVar("ModelT", bound=type)


@dataclass(frozen=True)
class AuditConfig:
    """Audit settings for one registered class.

    Attributes:
        model: The registered class
        type_name: Tag stored in ``Audit.auditable_type``
        ignored_attributes: Attributes never written to a change set
        rules: Ordered notification rules
        comment_required: Whether a blank audit_comment blocks the flush
        title_attribute: Attribute or method giving the notification title
        receiver_attribute: Attribute or method giving the receiver id
        create_comment: Template for the default create comment
        update_comment: Template for the default update comment
        associated_with: Relationship pointing at the grouping parent
        on: Actions that are audited
    """

    model: type
    type_name: str
    ignored_attributes: frozenset[str]
    rules: RuleSet = field(default_factory=RuleSet)
    comment_required: bool = False
    title_attribute: str = "name"
    receiver_attribute: str = "assigned_to"
    create_comment: str = ""
    update_comment: str = ""
    associated_with: str | None = None
    on: frozenset[str] = frozenset(AUDIT_ACTIONS)

    def audits(self, action: str) -> bool:
        """Whether ``action`` is audited for this class."""
        return action in self.on


def _coerce_identifier(mapper: Mapper[Any], ident: Any) -> Any:
    """Convert a stored identifier to the primary key's Python type."""
    column = mapper.primary_key[0]
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return ident
    if ident is None or isinstance(ident, python_type):
        return ident
    try:
        return python_type(ident)
    except (TypeError, ValueError):
        return ident


def _default_loader(cls: type) -> Loader:
    """Loader that fetches a mapped class by primary key."""
    mapper = inspect(cls)

    def load(session: Session, ident: Any) -> Any:
        return session.get(cls, _coerce_identifier(mapper, ident))

    return load


class TypeRegistry:
    """Registry of audited classes and lookup loaders.

    Lookups walk the MRO, so a subclass of a registered class shares
    its parent's configuration unless it is registered itself.
    """

    def __init__(self) -> None:
        self._configs: dict[type, AuditConfig] = {}
        self._tags: dict[type, str] = {}
        self._types: dict[str, type] = {}
        self._loaders: dict[str, Loader] = {}

    def register_type(
        self,
        cls: type,
        tag: str | None = None,
        loader: Loader | None = None,
    ) -> str:
        """Register a class for polymorphic and foreign lookups.

        Args:
            cls: Class to register
            tag: Type tag, defaults to the class name
            loader: ``(session, ident) -> entity | None``; mapped classes
                default to a primary key lookup

        Returns:
            The tag the class is registered under

        Raises:
            ConfigurationError: If the tag belongs to another class, or the
                class is not mapped and no loader is given
        """
        tag = tag or self._tags.get(cls) or cls.__name__
        existing = self._types.get(tag)
        if existing is not None and existing is not cls:
            raise ConfigurationError(
                "Type tag already registered",
                details={"tag": tag, "registered": existing.__name__},
            )
        if loader is None:
            if inspect(cls, raiseerr=False) is None:
                raise ConfigurationError(
                    "A loader is required for unmapped classes",
                    details={"type": cls.__name__},
                )
            loader = _default_loader(cls)

        self._tags[cls] = tag
        self._types[tag] = cls
        self._loaders[tag] = loader
        return tag

    def tag_for(self, cls_or_entity: Any) -> str:
        """Type tag of a class or instance, defaulting to its class name."""
        cls = cls_or_entity if isinstance(cls_or_entity, type) else type(cls_or_entity)
        for klass in cls.__mro__:
            if klass in self._tags:
                return self._tags[klass]
        return cls.__name__

    def type_for(self, tag: str) -> type | None:
        """Class registered under ``tag``."""
        return self._types.get(tag)

    def loader_for(self, tag: str) -> Loader:
        """Loader registered under ``tag``.

        Raises:
            ResolutionError: If nothing is registered under the tag
        """
        try:
            return self._loaders[tag]
        except KeyError:
            raise ResolutionError(
                "Unknown type tag", details={"tag": tag}
            ) from None

    def load(self, session: Session, tag: str, ident: Any) -> Any:
        """Load the entity registered under ``tag`` with id ``ident``.

        Raises:
            ResolutionError: If the tag is unknown or no record is found
        """
        entity = self.loader_for(tag)(session, ident)
        if entity is None:
            raise ResolutionError(
                "Record not found", details={"tag": tag, "id": str(ident)}
            )
        return entity

    def add_config(self, config: AuditConfig) -> None:
        """Store the configuration of an audited class."""
        self._configs[config.model] = config

    def config_for(self, cls_or_entity: Any) -> AuditConfig | None:
        """Configuration of a class or instance, or None if not audited."""
        cls = cls_or_entity if isinstance(cls_or_entity, type) else type(cls_or_entity)
        for klass in cls.__mro__:
            config = self._configs.get(klass)
            if config is not None:
                return config
        return None

    def require_config(self, cls_or_entity: Any) -> AuditConfig:
        """Configuration of a class or instance.

        Raises:
            ConfigurationError: If the class is not audited
        """
        config = self.config_for(cls_or_entity)
        if config is None:
            cls = cls_or_entity if isinstance(cls_or_entity, type) else type(cls_or_entity)
            raise ConfigurationError(
                "Type is not audited", details={"type": cls.__name__}
            )
        return config

    def is_audited(self, cls_or_entity: Any) -> bool:
        """Whether a class or instance is audited."""
        return self.config_for(cls_or_entity) is not None

    def audited_types(self) -> list[type]:
        """Every class registered for auditing."""
        return list(self._configs)

    def clear(self) -> None:
        """Forget every registration. Listeners stay attached but go idle."""
        self._configs.clear()
        self._tags.clear()
        self._types.clear()
        self._loaders.clear()


# Global registry instance
registry = TypeRegistry()


def _compute_ignored(
    mapper: Mapper[Any],
    only: Iterable[str] | None,
    except_: Iterable[str] | None,
) -> frozenset[str]:
    keys = set(column_keys(mapper))
    if only is not None:
        only = set(only)
        unknown = only - keys
        if unknown:
            raise ConfigurationError(
                "Unknown attributes in 'only'",
                details={"type": mapper.class_.__name__, "attributes": sorted(unknown)},
            )
        return frozenset(keys - only)

    ignored = default_ignored_attributes(mapper)
    ignored.update(get_settings().ignored_attributes)
    ignored.update(except_ or ())
    return frozenset(ignored)


def _validate_rules(
    cls: type,
    rules: RuleSet,
    keys: set[str],
    ignored: frozenset[str],
) -> None:
    for rule in rules.rules:
        if isinstance(rule, AttributeSetRule):
            for name in rule.attributes:
                if name not in keys:
                    raise ConfigurationError(
                        "Unknown watched attribute",
                        details={"type": cls.__name__, "attribute": name},
                    )
                if name in ignored:
                    raise ConfigurationError(
                        "Watched attribute is not audited",
                        details={"type": cls.__name__, "attribute": name},
                    )
        elif isinstance(rule, PolymorphicRule):
            for name in (rule.content_attribute, rule.type_attribute, rule.id_attribute):
                if not hasattr(cls, name):
                    raise ConfigurationError(
                        "Unknown polymorphic attribute",
                        details={"type": cls.__name__, "attribute": name},
                    )


def _track_old_values(cls: type, keys: Iterable[str]) -> None:
    """Make attribute sets load the replaced value so updates see it."""

    def _noop(target: Any, value: Any, oldvalue: Any, initiator: Any) -> None:
        return None

    for key in keys:
        event.listen(getattr(cls, key), "set", _noop, active_history=True)


def notifiably_audited(  # noqa: PLR0913
    cls: ModelT | None = None,
    *,
    only: Iterable[str] | None = None,
    except_: Iterable[str] | None = None,
    on: Iterable[str] | None = None,
    comment_required: bool = False,
    associated_with: str | None = None,
    alert_to: str | None = None,
    alert_for: Any = None,
    title: str | None = None,
    create_comment: str | None = None,
    update_comment: str | None = None,
    type_name: str | None = None,
) -> Any:
    """Register a mapped class for auditing and change notifications.

    Usable as ``@notifiably_audited``, ``@notifiably_audited(...)`` or
    ``notifiably_audited(Order, ...)``. Registering a class twice is a
    no-op that returns the class unchanged.

    Args:
        cls: Mapped class to register
        only: Audit only these attributes
        except_: Extra attributes to leave out of change sets
        on: Subset of ("create", "update", "destroy") to audit
        comment_required: Block flushes whose audit_comment is blank
        associated_with: Relationship naming the grouping parent
        alert_to: Attribute giving the receiver id (default "assigned_to")
        alert_for: Ordered rules, as rule models or dicts
        title: Attribute giving the notification title (default "name")
        create_comment: Default create comment, ``<<here>>`` is the type name
        update_comment: Default update comment, ``<<here>>`` is the type name
        type_name: Tag stored in audit records, defaults to the class name

    Example:
        @notifiably_audited(
            alert_for=[
                AttributeSetRule(
                    attributes=("status",),
                    title="Status Changed",
                    body="Order status updated",
                ),
            ],
        )
        class Order(Base, IntegerIDMixin, AuditedMixin):
            ...
    """

    def decorate(target: ModelT) -> ModelT:
        register_audited(
            target,
            only=only,
            except_=except_,
            on=on,
            comment_required=comment_required,
            associated_with=associated_with,
            alert_to=alert_to,
            alert_for=alert_for,
            title=title,
            create_comment=create_comment,
            update_comment=update_comment,
            type_name=type_name,
        )
        return target

    if cls is not None:
        return decorate(cls)
    return decorate


def register_audited(  # noqa: PLR0913
    cls: type,
    *,
    only: Iterable[str] | None = None,
    except_: Iterable[str] | None = None,
    on: Iterable[str] | None = None,
    comment_required: bool = False,
    associated_with: str | None = None,
    alert_to: str | None = None,
    alert_for: Any = None,
    title: str | None = None,
    create_comment: str | None = None,
    update_comment: str | None = None,
    type_name: str | None = None,
) -> AuditConfig:
    """Validate options and register ``cls``. See ``notifiably_audited``.

    Raises:
        ConfigurationError: If the class is unmapped or an option is invalid
    """
    existing = registry._configs.get(cls)
    if existing is not None:
        return existing

    mapper = inspect(cls, raiseerr=False)
    if mapper is None:
        raise ConfigurationError(
            "Only mapped classes can be audited", details={"type": cls.__name__}
        )

    actions = frozenset(on) if on is not None else frozenset(AUDIT_ACTIONS)
    unknown_actions = actions - set(AUDIT_ACTIONS)
    if unknown_actions:
        raise ConfigurationError(
            "Unknown audit actions",
            details={"type": cls.__name__, "actions": sorted(unknown_actions)},
        )

    if associated_with is not None and not hasattr(cls, associated_with):
        raise ConfigurationError(
            "Unknown associated_with relationship",
            details={"type": cls.__name__, "relationship": associated_with},
        )

    try:
        rules = parse_rules(alert_for)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(
            "Invalid notification rules",
            details={"type": cls.__name__, "errors": exc.errors()},
        ) from exc

    keys = set(column_keys(mapper))
    ignored = _compute_ignored(mapper, only, except_)
    _validate_rules(cls, rules, keys, ignored)

    audit_settings = get_settings()
    inherits_config = registry.config_for(cls) is not None
    tag = registry.register_type(cls, type_name)
    config = AuditConfig(
        model=cls,
        type_name=tag,
        ignored_attributes=ignored,
        rules=rules,
        comment_required=comment_required,
        title_attribute=title or audit_settings.default_title_attribute,
        receiver_attribute=alert_to or audit_settings.default_receiver_attribute,
        create_comment=create_comment or audit_settings.default_create_comment,
        update_comment=update_comment or audit_settings.default_update_comment,
        associated_with=associated_with,
        on=actions,
    )
    registry.add_config(config)

    # Classes without AuditedMixin still need the transient comment field
    if not hasattr(cls, AUDIT_COMMENT_FIELD):
        setattr(cls, AUDIT_COMMENT_FIELD, None)

    _track_old_values(cls, keys - ignored)

    # Imported here because the listeners depend on this module
    from notifiable_audit.core.audit.listeners import attach_listeners, setup_audit_listeners

    setup_audit_listeners()
    if not inherits_config:
        attach_listeners(cls)

    log.info(
        "audit_type_registered",
        type=tag,
        rules=len(rules.rules),
        ignored=sorted(ignored),
        on=sorted(actions),
    )
    return config


def register_type(cls: type, tag: str | None = None, loader: Loader | None = None) -> str:
    """Register a lookup-only class on the global registry."""
    return registry.register_type(cls, tag, loader)


def has_associated_audits(cls: ModelT) -> ModelT:
    """Mark a class as a grouping parent of audited records.

    Registers the class so its audits can be queried with
    ``AuditRepository.associated_audits``.
    """
    registry.register_type(cls)
    return cls
