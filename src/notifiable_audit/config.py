"""Package configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notifiable_audit.constants import (
    COMMENT_ELLIPSIS,
    COMMENT_TRUNCATE_LENGTH,
    DEFAULT_CREATE_COMMENT,
    DEFAULT_RECEIVER_ATTRIBUTE,
    DEFAULT_TITLE_ATTRIBUTE,
    DEFAULT_UPDATE_COMMENT,
)


class AuditSettings(BaseSettings):
    """Audit settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFIABLE_AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Auditing
    enabled_by_default: bool = True
    ignored_attributes: list[str] = []

    # Notification defaults
    default_title_attribute: str = DEFAULT_TITLE_ATTRIBUTE
    default_receiver_attribute: str = DEFAULT_RECEIVER_ATTRIBUTE
    default_create_comment: str = DEFAULT_CREATE_COMMENT
    default_update_comment: str = DEFAULT_UPDATE_COMMENT
    comment_truncate_length: int = COMMENT_TRUNCATE_LENGTH
    comment_ellipsis: str = COMMENT_ELLIPSIS

    # Observability
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("comment_truncate_length")
    @classmethod
    def validate_truncate_length(cls, v: int) -> int:
        """Reject non-positive truncation lengths.

        Args:
            v: The configured length

        Returns:
            The validated length

        Raises:
            ValueError: If the length is zero or negative
        """
        if v <= 0:
            raise ValueError("comment_truncate_length must be a positive integer")
        return v


@lru_cache
def get_settings() -> AuditSettings:
    """Get cached settings instance."""
    return AuditSettings()

