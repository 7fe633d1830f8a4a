"""Package-wide constants.

This module defines constants used throughout the package
to avoid magic strings and ensure consistency.
"""

# Audit actions
ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DESTROY = "destroy"
AUDIT_ACTIONS = (ACTION_CREATE, ACTION_UPDATE, ACTION_DESTROY)

# Special value accepted by revision() for "one before the current version"
PREVIOUS_VERSION = "previous"

# Comment templates
TYPE_NAME_PLACEHOLDER = "<<here>>"
DEFAULT_CREATE_COMMENT = "New <<here>> has been created"
DEFAULT_UPDATE_COMMENT = "Values of <<here>> has been updated"

# Notification text
COMMENT_TRUNCATE_LENGTH = 21
COMMENT_ELLIPSIS = "..."

# Attribute selectors
DEFAULT_TITLE_ATTRIBUTE = "name"
DEFAULT_RECEIVER_ATTRIBUTE = "assigned_to"
AUDIT_COMMENT_FIELD = "audit_comment"

# Always excluded from change sets, next to primary keys,
# discriminators and optimistic-lock columns
TIMESTAMP_ATTRIBUTES = ("created_at", "updated_at")

# String field lengths
MAX_TYPE_NAME_LENGTH = 100
MAX_IDENTIFIER_LENGTH = 255
MAX_ACTION_LENGTH = 20
MAX_TITLE_LENGTH = 255

# Validation messages
COMMENT_REQUIRED_BEFORE_DESTROY = "Comment required before destruction"
COMMENT_BLANK = "can't be blank"
