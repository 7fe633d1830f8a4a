"""Structured logging setup."""

import logging

import structlog

from notifiable_audit.config import AuditSettings, get_settings


def configure_logging(audit_settings: AuditSettings | None = None) -> None:
    """Configure structlog for the audit engine.

    Call once at application startup. Applications that already
    configure structlog can skip this; the package only ever calls
    ``structlog.get_logger()``.

    Args:
        audit_settings: Settings to read the level and renderer from
    """
    audit_settings = audit_settings or get_settings()
    level = logging.getLevelName(audit_settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if audit_settings.json_logs
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


__all__ = [
    "configure_logging",
]
