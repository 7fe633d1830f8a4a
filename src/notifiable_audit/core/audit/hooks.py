"""Lifecycle hooks around audit writes.

``before_audit`` hooks see the unsaved record; ``after_audit`` hooks run
once it has been inserted, which is where notification delivery belongs.
An entity that defines an ``after_audit(record)`` method gets it called
after the registered hooks. Hook errors propagate and abort the flush.
"""

from collections.abc import Callable
from typing import Any

from notifiable_audit.core.audit.models import Audit


AuditHook = Callable[[Any, Audit], None]


class AuditHooks:
    """Ordered before/after callbacks, optionally scoped to a type."""

    def __init__(self) -> None:
        self._before: list[tuple[type | None, AuditHook]] = []
        self._after: list[tuple[type | None, AuditHook]] = []

    def before_audit(self, hook: AuditHook, for_type: type | None = None) -> AuditHook:
        """Register a hook run before each insert. Usable as a decorator."""
        self._before.append((for_type, hook))
        return hook

    def after_audit(self, hook: AuditHook, for_type: type | None = None) -> AuditHook:
        """Register a hook run after each insert. Usable as a decorator."""
        self._after.append((for_type, hook))
        return hook

    def run(self, entity: Any, record: Audit, write: Callable[[], Audit]) -> Audit:
        """Run the before hooks, ``write``, then the after hooks.

        Args:
            entity: The audited entity
            record: The record about to be written
            write: Performs the insert and returns the written record

        Returns:
            The written record
        """
        for hook in self._matching(self._before, entity):
            hook(entity, record)

        written = write()

        for hook in self._matching(self._after, entity):
            hook(entity, written)

        entity_hook = getattr(entity, "after_audit", None)
        if callable(entity_hook):
            entity_hook(written)

        return written

    def clear(self) -> None:
        """Remove every registered hook."""
        self._before.clear()
        self._after.clear()

    @staticmethod
    def _matching(
        hooks: list[tuple[type | None, AuditHook]],
        entity: Any,
    ) -> list[AuditHook]:
        return [
            hook
            for for_type, hook in hooks
            if for_type is None or isinstance(entity, for_type)
        ]


# Global hook chain used by the audit writer
audit_hooks = AuditHooks()
