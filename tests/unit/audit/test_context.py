"""Tests for the auditing context."""

import contextvars
from types import SimpleNamespace

from notifiable_audit.core.audit.context import (
    audit_as,
    auditing_enabled,
    current_user_id,
    disable_auditing,
    enable_auditing,
    without_auditing,
)
from tests.models import Order, Product


class TestEnabledFlags:
    """Tests for per-type enabled flags."""

    def test_enabled_by_default(self):
        """Verify registered types are audited unless switched off."""
        assert auditing_enabled(Order)
        assert auditing_enabled(Order(name="a", status="b"))

    def test_flags_are_per_type(self):
        """Verify disabling one type leaves others alone."""
        disable_auditing(Order)

        assert not auditing_enabled(Order)
        assert auditing_enabled(Product)

        enable_auditing(Order)
        assert auditing_enabled(Order)

    def test_instance_and_class_share_a_flag(self):
        """Verify an instance reads its class flag."""
        disable_auditing(Order(name="a", status="b"))

        assert not auditing_enabled(Order)

    def test_flags_do_not_leak_into_other_contexts(self):
        """Verify a flag set in a copied context stays there."""
        ctx = contextvars.copy_context()

        ctx.run(disable_auditing, Order)

        assert not ctx.run(auditing_enabled, Order)
        assert auditing_enabled(Order)


class TestWithoutAuditing:
    """Tests for the without_auditing scope."""

    def test_disables_inside_block(self):
        """Verify the type is disabled within the block and restored after."""
        with without_auditing(Order):
            assert not auditing_enabled(Order)
            assert auditing_enabled(Product)

        assert auditing_enabled(Order)

    def test_restores_on_error(self):
        """Verify the flag is restored when the block raises."""
        try:
            with without_auditing(Order):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert auditing_enabled(Order)

    def test_stays_disabled_if_disabled_on_entry(self):
        """Verify a type disabled before the block stays disabled after."""
        disable_auditing(Order)

        with without_auditing(Order):
            assert not auditing_enabled(Order)

        assert not auditing_enabled(Order)

    def test_nested_scopes(self):
        """Verify the inner scope does not re-enable the outer one."""
        with without_auditing(Order):
            with without_auditing(Order):
                pass
            assert not auditing_enabled(Order)

        assert auditing_enabled(Order)


class TestAuditAs:
    """Tests for the acting user scope."""

    def test_no_user_by_default(self):
        """Verify no user is set outside a scope."""
        assert current_user_id() is None

    def test_user_object(self):
        """Verify objects are identified by their id attribute."""
        with audit_as(SimpleNamespace(id=12)):
            assert current_user_id() == "12"

        assert current_user_id() is None

    def test_raw_identifier(self):
        """Verify raw identifiers are stored as strings."""
        with audit_as("robot"):
            assert current_user_id() == "robot"

    def test_nested_users(self):
        """Verify the outer user is restored after an inner scope."""
        with audit_as(1):
            with audit_as(2):
                assert current_user_id() == "2"
            assert current_user_id() == "1"
