"""Integration tests for rule-driven notifications."""

from notifiable_audit.core.audit import AuditRepository
from tests.factories import CommentFactory, OrderFactory, ProductFactory
from tests.models import Comment, ProductStatus, User


class TestOrderRules:
    """Tests for attribute-set rules on orders."""

    def test_status_change(self, db, audits):
        """Verify a status change fires the first matching rule."""
        order = OrderFactory.build(name="A-1", status="pending")
        db.add(order)
        db.flush()

        order.status = "shipped"
        db.flush()

        update = audits()[-1]
        assert update.audited_changes == {"status": ["pending", "shipped"]}
        assert update.title == "Status Changed"
        assert update.comment == "Order status updated"
        assert update.version == 2

    def test_first_rule_shadows_later_one(self, db, audits):
        """Verify only the first matching rule fires when several match."""
        order = OrderFactory.build(name="A-1", status="pending")
        db.add(order)
        db.flush()

        order.status = "shipped"
        order.name = "A-2"
        db.flush()

        update = audits()[-1]
        assert update.title == "Status Changed"
        assert set(update.audited_changes) == {"status", "name"}

    def test_no_rule_uses_default_payload(self, db, audits):
        """Verify a change no rule watches gets the default payload."""
        order = OrderFactory.build(name="A-1")
        db.add(order)
        db.flush()

        order.name = "A-2"
        db.flush()

        update = audits()[-1]
        assert update.title == "A-2"
        assert update.comment == "Values of Order has been updated"

    def test_creates_ignore_attribute_rules(self, db, audits):
        """Verify a create never fires an attribute-set rule."""
        db.add(OrderFactory.build(name="A-1", status="shipped"))
        db.flush()

        (create,) = audits()
        assert create.title == "A-1"
        assert create.comment == "New Order has been created"


class TestProductRules:
    """Tests for foreign lookups and custom comments on products."""

    def test_reassignment_title_has_lookup(self, db, audits):
        """Verify the receiver's email is appended to the title."""
        user = User(email="ann@example.com")
        product = ProductFactory.build(name="Lamp")
        db.add_all([user, product])
        db.flush()

        product.assigned_to = user.id
        db.flush()

        update = audits()[-1]
        assert update.title == "Re-assigned[ann@example.com]"
        assert update.comment == "This product has been reassigned"
        assert update.receiver_id == str(user.id)

    def test_status_lookup(self, db, audits):
        """Verify a second lookup rule resolves its own type."""
        status = ProductStatus(name="Discontinued")
        product = ProductFactory.build()
        db.add_all([status, product])
        db.flush()

        product.product_status_id = status.id
        db.flush()

        assert audits()[-1].title == "Status Changed[Discontinued]"

    def test_missing_lookup_leaves_title(self, db, audits):
        """Verify a dangling foreign key leaves the title unsuffixed."""
        product = ProductFactory.build()
        db.add(product)
        db.flush()

        product.assigned_to = 999
        db.flush()

        assert audits()[-1].title == "Re-assigned"

    def test_all_watched_attributes_required(self, db, audits):
        """Verify a multi-attribute rule needs every attribute to change."""
        product = ProductFactory.build(name="Lamp", color="red", score=1)
        db.add(product)
        db.flush()

        product.color = "blue"
        db.flush()
        partial = audits()[-1]

        product.color = "green"
        product.score = 5
        db.flush()
        full = audits()[-1]

        assert partial.title == "Lamp"
        assert partial.comment == "Custom: Values of Product has been updated"
        assert full.title == "Color/Score Changed"
        assert full.audited_changes == {"color": ["blue", "green"], "score": [1, 5]}

    def test_create_comment_uses_default_template(self, db, audits):
        """Verify the create template falls back to the default."""
        db.add(ProductFactory.build())
        db.flush()

        assert audits()[0].comment == "New Product has been created"


class TestPolymorphicRule:
    """Tests for comments attached to other records."""

    def test_comment_on_widget(self, db, audits, widget):
        """Verify the parent's title and receiver route the notification."""
        comment = CommentFactory.build(
            content="Hello World, this is long text",
            commentable_type="Widget",
            commentable_id=widget.id,
        )
        db.add(comment)
        db.flush()

        (audit,) = audits()
        assert audit.auditable_type == "Comment"
        assert audit.title == "Comment - Widget[Sprocket]"
        assert audit.comment == "Hello World, this is ..."
        assert audit.receiver_id == "42"
        assert audit.audited_changes["content"] == "Hello World, this is long text"

    def test_missing_parent(self, db, audits):
        """Verify a comment on a missing parent still notifies, without receiver."""
        db.add(Comment(content="Orphan note", commentable_type="Widget", commentable_id=404))
        db.flush()

        (audit,) = audits()
        assert audit.title == "Comment"
        assert audit.comment == "Orphan note..."
        assert audit.receiver_id is None

    def test_rule_fires_on_update(self, db, audits, widget):
        """Verify editing a comment fires the polymorphic rule again."""
        comment = CommentFactory.build(content="First", commentable_id=widget.id)
        db.add(comment)
        db.flush()

        comment.content = "Second thoughts"
        db.flush()

        update = audits()[-1]
        assert update.action == "update"
        assert update.title == "Comment - Widget[Sprocket]"
        assert update.comment == "Second thoughts..."
        assert update.audited_changes == {"content": ["First", "Second thoughts"]}

    def test_receiver_inbox(self, db, widget):
        """Verify notifications can be listed for their receiver."""
        db.add_all(
            [
                CommentFactory.build(content="one", commentable_id=widget.id),
                CommentFactory.build(content="two", commentable_id=widget.id),
            ]
        )
        db.flush()

        repo = AuditRepository(db)
        inbox = repo.for_receiver(42)
        assert {record.comment for record in inbox} == {"one...", "two..."}

        inbox[0].checked = True
        db.flush()

        assert len(repo.for_receiver("42", unchecked_only=True)) == 1
