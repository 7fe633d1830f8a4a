"""Test factories for generating test data."""

from tests.factories.comment import CommentFactory
from tests.factories.order import OrderFactory
from tests.factories.product import ProductFactory


__all__ = [
    "CommentFactory",
    "OrderFactory",
    "ProductFactory",
]
