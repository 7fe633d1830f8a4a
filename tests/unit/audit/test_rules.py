"""Tests for notification rule schemas."""

import pytest
from pydantic import ValidationError

from notifiable_audit.core.audit.rules import (
    AttributeSetRule,
    ForeignLookup,
    PolymorphicRule,
    RuleSet,
    parse_rules,
)


class TestAttributeSetRule:
    """Tests for AttributeSetRule."""

    def test_matches_when_all_watched_changed(self):
        """Verify a rule fires when its attributes are a subset of the changes."""
        rule = AttributeSetRule(attributes=("color", "score"), body="Changed")

        assert rule.matches({"color", "score", "name"})

    def test_no_match_when_one_missing(self):
        """Verify a rule does not fire on a partial change."""
        rule = AttributeSetRule(attributes=("color", "score"), body="Changed")

        assert not rule.matches({"color"})

    def test_duplicates_are_dropped_in_order(self):
        """Verify repeated attribute names collapse, keeping order."""
        rule = AttributeSetRule(attributes=("b", "a", "b"), body="x")

        assert rule.attributes == ("b", "a")

    def test_empty_attributes_rejected(self):
        """Verify a rule must watch at least one attribute."""
        with pytest.raises(ValidationError):
            AttributeSetRule(attributes=(), body="x")

    def test_body_required(self):
        """Verify the body is mandatory."""
        with pytest.raises(ValidationError):
            AttributeSetRule(attributes=("status",))

    def test_rules_are_frozen(self):
        """Verify rules cannot be mutated after validation."""
        rule = AttributeSetRule(attributes=("status",), body="x")

        with pytest.raises(ValidationError):
            rule.body = "y"


class TestParseRules:
    """Tests for parse_rules and the rule union."""

    def test_none_gives_empty_rule_set(self):
        """Verify None yields no rules."""
        assert parse_rules(None).rules == ()

    def test_rule_set_passes_through(self):
        """Verify an existing RuleSet is returned unchanged."""
        rule_set = RuleSet()

        assert parse_rules(rule_set) is rule_set

    def test_dicts_use_kind_discriminator(self):
        """Verify dict rules are parsed into the right rule type."""
        rule_set = parse_rules(
            [
                {"kind": "attributes", "attributes": ["status"], "body": "x"},
                {
                    "kind": "polymorphic",
                    "content_attribute": "content",
                    "type_attribute": "commentable_type",
                    "id_attribute": "commentable_id",
                },
            ]
        )

        first, second = rule_set.rules
        assert isinstance(first, AttributeSetRule)
        assert isinstance(second, PolymorphicRule)

    def test_nested_foreign_lookup(self):
        """Verify a nested foreign lookup dict is validated."""
        rule_set = parse_rules(
            [
                {
                    "kind": "attributes",
                    "attributes": ["assigned_to"],
                    "body": "x",
                    "foreign_lookup": {"type": "User", "display_attribute": "email"},
                }
            ]
        )

        assert rule_set.rules[0].foreign_lookup == ForeignLookup(
            type="User", display_attribute="email"
        )

    def test_unknown_kind_rejected(self):
        """Verify an unknown discriminator fails validation."""
        with pytest.raises(ValidationError):
            parse_rules([{"kind": "sometimes", "body": "x"}])

    def test_order_is_preserved(self):
        """Verify rules keep declaration order."""
        rule_set = parse_rules(
            [
                AttributeSetRule(attributes=("b",), body="second"),
                AttributeSetRule(attributes=("a",), body="first"),
            ]
        )

        assert [rule.body for rule in rule_set.rules] == ["second", "first"]
