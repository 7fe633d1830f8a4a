"""Factory for Order."""

from uuid import uuid4

from polyfactory import Ignore
from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from tests.models import Order


class OrderFactory(SQLAlchemyFactory[Order]):
    """Factory for creating test Order instances."""

    __model__ = Order
    __set_relationships__ = False

    id = Ignore()
    lock_version = Ignore()

    @classmethod
    def name(cls) -> str:
        """Generate a unique order name."""
        return f"Order {uuid4().hex[:8]}"

    @classmethod
    def status(cls) -> str:
        """Default to pending."""
        return "pending"

    @classmethod
    def notes(cls) -> None:
        """No notes by default."""
        return None

    @classmethod
    def assigned_to(cls) -> None:
        """Unassigned by default."""
        return None
