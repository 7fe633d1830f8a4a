"""Tests for the Audit model's derived views."""

from notifiable_audit.core.audit.models import Audit


class TestAttributeViews:
    """Tests for new_attributes and old_attributes."""

    def test_update_pairs(self) -> None:
        """Verify update records split into old and new sides."""
        audit = Audit(action="update", audited_changes={"status": ["pending", "shipped"]})

        assert audit.new_attributes == {"status": "shipped"}
        assert audit.old_attributes == {"status": "pending"}

    def test_create_snapshot(self) -> None:
        """Verify snapshot records are returned as is."""
        audit = Audit(action="create", audited_changes={"name": "A-1", "tags": ["a", "b"]})

        assert audit.new_attributes == {"name": "A-1", "tags": ["a", "b"]}
        assert audit.old_attributes == {"name": "A-1", "tags": ["a", "b"]}

    def test_empty_changes(self) -> None:
        """Verify a record without changes yields empty views."""
        audit = Audit(action="update", audited_changes=None)

        assert audit.new_attributes == {}
        assert audit.old_attributes == {}

    def test_repr(self) -> None:
        """Verify the repr names the audited entity and version."""
        audit = Audit(
            id=1, action="create", auditable_type="Order", auditable_id="5", version=1
        )

        assert repr(audit) == "<Audit(id=1, action=create, auditable=Order#5, version=1)>"
