"""Pydantic schemas for notification rules.

A rule set is an ordered list of rules; the first rule that matches a
mutation decides the notification and no later rule is consulted.
"""

from collections.abc import Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ForeignLookup(BaseModel):
    """Associated record whose display value is appended to a rule title."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Registered type tag of the associated record")
    display_attribute: str = Field(
        ..., description="Attribute of the associated record shown in the title"
    )


class AttributeSetRule(BaseModel):
    """Fires when every watched attribute changed in the same update."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["attributes"] = "attributes"
    attributes: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Attributes that must all change; the first one keys the lookup",
    )
    title: str | None = Field(None, description="Notification title")
    body: str = Field(..., description="Notification body")
    foreign_lookup: ForeignLookup | None = Field(
        None, description="Associated record used to enrich the title"
    )

    @field_validator("attributes")
    @classmethod
    def dedupe_attributes(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated names, keeping declaration order."""
        return tuple(dict.fromkeys(v))

    def matches(self, changed: Sequence[str] | set[str]) -> bool:
        """True when the watched set is a subset of the changed attributes."""
        return not set(self.attributes) - set(changed)


class PolymorphicRule(BaseModel):
    """Always fires; notifies about the parent the entity is attached to.

    Used for attachment models such as comments, whose parent is given
    by a type column and an id column.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["polymorphic"] = "polymorphic"
    title: str | None = Field(None, description="Title prefix, defaults to the entity title")
    content_attribute: str = Field(
        ..., description="Attribute whose text becomes the notification body"
    )
    type_attribute: str = Field(..., description="Column holding the parent type tag")
    id_attribute: str = Field(..., description="Column holding the parent id")


ChangeRule = Annotated[AttributeSetRule | PolymorphicRule, Field(discriminator="kind")]


class RuleSet(BaseModel):
    """Ordered notification rules for one audited type."""

    model_config = ConfigDict(frozen=True)

    rules: tuple[ChangeRule, ...] = ()


def parse_rules(value: Any) -> RuleSet:
    """Build a RuleSet from a RuleSet, None, or a sequence of rules or dicts.

    Raises:
        pydantic.ValidationError: If any rule is malformed
    """
    if isinstance(value, RuleSet):
        return value
    if value is None:
        return RuleSet()
    return RuleSet.model_validate({"rules": list(value)})
