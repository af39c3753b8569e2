"""Tests for structured logging."""

from __future__ import annotations

import json
import logging

from namespacestore_operator.logging import log_resource_event, setup_structured_logging


class TestLogResourceEvent:
    """Test cases for log_resource_event."""

    def test_json_line(self, caplog):
        """Test that the log line carries the resource context."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.WARNING, logger="test.structured"):
            log_resource_event(
                logger,
                controller="namespacestore-operator",
                resource_kind="NamespaceStore",
                resource_name="ns1",
                namespace="noobaa",
                uid="u1",
                event="warning",
                reason="ConnectionDrift",
                message="drift",
                level=logging.WARNING,
                desired_endpoint="https://s3.amazonaws.com",
            )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["level"] == "WARNING"
        assert record["resource"] == "NamespaceStore"
        assert record["reason"] == "ConnectionDrift"
        assert record["desired_endpoint"] == "https://s3.amazonaws.com"

    def test_extra_fields_redacted(self, caplog):
        """Test that sensitive extra fields never reach the log."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger,
                controller="c",
                resource_kind="NamespaceStore",
                resource_name="ns1",
                namespace="noobaa",
                uid="u1",
                event="info",
                reason="Info",
                message="m",
                auth_token="abc123",
            )

        line = caplog.records[-1].getMessage()
        assert "abc123" not in line
        assert json.loads(line)["auth_token"] == "[REDACTED]"


class TestSetupStructuredLogging:
    """Test cases for setup_structured_logging."""

    def test_level_from_env(self, monkeypatch):
        """Test that LOG_LEVEL sets the root level and quiets client libraries."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_structured_logging()

            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
