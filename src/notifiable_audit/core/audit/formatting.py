"""Comment and title formatting for audit notifications."""

from typing import Any

from notifiable_audit.config import get_settings
from notifiable_audit.constants import TYPE_NAME_PLACEHOLDER


def format_template(template: str, type_name: str) -> str:
    """Replace every ``<<here>>`` placeholder with the type's display name.

    Example:
        format_template("New <<here>> has been created", "Order")
        # "New Order has been created"
    """
    return template.replace(TYPE_NAME_PLACEHOLDER, type_name)


def truncate_comment(
    text: Any,
    length: int | None = None,
    marker: str | None = None,
) -> str:
    """Cap free text at ``length`` characters and append the marker.

    The marker is appended even when the text is already short enough.

    Args:
        text: Source value, converted with str(); None becomes ""
        length: Characters kept, defaults to the configured length
        marker: Suffix, defaults to the configured ellipsis

    Returns:
        The truncated comment
    """
    audit_settings = get_settings()
    length = audit_settings.comment_truncate_length if length is None else length
    marker = audit_settings.comment_ellipsis if marker is None else marker
    source = "" if text is None else str(text)
    return source[:length] + marker


def polymorphic_title(base: str, parent_type: str, display: Any) -> str:
    """Title for a notification about an attachment to ``parent_type``.

    Example:
        polymorphic_title("New comment", "Widget", "Sprocket")
        # "New comment - Widget[Sprocket]"
    """
    return f"{base} - {parent_type}[{display}]"


def append_lookup(title: str, display: Any) -> str:
    """Suffix a title with a looked-up display value in brackets."""
    return f"{title}[{display}]"
