"""Tests for structlog configuration."""

import json

import pytest
import structlog

from notifiable_audit.config import AuditSettings
from notifiable_audit.core.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_renderer(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Verify JSON logs carry the event name and level."""
        configure_logging(AuditSettings(_env_file=None, json_logs=True))

        structlog.get_logger().info("audit_written", type="Order", version=2)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "audit_written"
        assert entry["level"] == "info"
        assert entry["version"] == 2
        assert "timestamp" in entry

    def test_level_filtering(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Verify events below the configured level are dropped."""
        configure_logging(AuditSettings(_env_file=None, json_logs=True, log_level="WARNING"))

        structlog.get_logger().info("audit_skipped")
        structlog.get_logger().warning("audit_resolution_failed")

        out = capsys.readouterr().out
        assert "audit_skipped" not in out
        assert "audit_resolution_failed" in out
