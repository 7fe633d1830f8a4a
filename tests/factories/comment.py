"""Factory for Comment."""

from polyfactory import Ignore
from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from tests.models import Comment


class CommentFactory(SQLAlchemyFactory[Comment]):
    """Factory for creating test Comment instances."""

    __model__ = Comment
    __set_relationships__ = False

    id = Ignore()

    @classmethod
    def content(cls) -> str:
        """Default comment text."""
        return "Looks good to me"

    @classmethod
    def commentable_type(cls) -> str:
        """Attach to widgets by default."""
        return "Widget"

    @classmethod
    def commentable_id(cls) -> int:
        """Attach to widget 7 by default."""
        return 7
