"""Pytest configuration and shared fixtures."""

from collections.abc import Generator

import pytest
from sqlalchemy import Engine, create_engine, select
from sqlalchemy.orm import Session

from notifiable_audit.core.audit import context as audit_context
from notifiable_audit.core.audit.hooks import audit_hooks
from notifiable_audit.core.audit.models import Audit
from notifiable_audit.core.database import Base

# Import all models to ensure they're registered with Base.metadata and the audit registry
from tests.models import Widget


@pytest.fixture(autouse=True)
def reset_audit_state() -> Generator[None, None, None]:
    """Reset context flags and hooks around each test."""
    audit_context._auditing_flags.set(None)
    audit_context._audit_user.set(None)
    yield
    audit_context._auditing_flags.set(None)
    audit_context._audit_user.set(None)
    audit_hooks.clear()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create an in-memory SQLite engine with every table."""
    engine = create_engine("sqlite://", echo=False)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session for tests.

    Each test runs in its own transaction that is rolled back
    after the test completes.
    """
    with engine.connect() as conn:
        transaction = conn.begin()
        with Session(bind=conn) as session:
            yield session
        if transaction.is_active:
            transaction.rollback()


@pytest.fixture
def audits(db: Session):
    """Return a callable listing every audit row, oldest first.

    Reads without autoflush so pending changes rejected by a failed
    flush are not flushed again.
    """

    def _audits() -> list[Audit]:
        with db.no_autoflush:
            return list(db.scalars(select(Audit).order_by(Audit.id)).all())

    return _audits


@pytest.fixture
def widget(db: Session) -> Widget:
    """A persisted widget with id 7, created without auditing.

    Returns:
        The widget
    """
    widget = Widget(id=7, label="Sprocket", owner_id=42)
    widget.save_without_auditing(db)
    return widget
