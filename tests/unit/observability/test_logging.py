"""Tests for log formatting and request context propagation."""

from __future__ import annotations

import json
import logging
import sys

from aegis.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    request_id_var,
    user_id_var,
)


def _record(message: str = "Report created", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="aegis.api.routers.reports",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "aegis.api.routers.reports"
        assert data["message"] == "Report created"
        assert "request_id" not in data

    def test_includes_context(self) -> None:
        with LogContext(request_id="req-1", correlation_id="corr-1", user_id="reliefAdmin"):
            data = json.loads(JsonFormatter().format(_record()))

        assert data["request_id"] == "req-1"
        assert data["correlation_id"] == "corr-1"
        assert data["user_id"] == "reliefAdmin"

    def test_extra_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record(incident_id="inc-1", tier=object())))

        assert data["incident_id"] == "inc-1"
        assert isinstance(data["tier"], str)

    def test_exception(self) -> None:
        try:
            raise ValueError("bad coordinates")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad coordinates"


class TestConsoleFormatter:
    def test_context_suffix(self) -> None:
        with LogContext(request_id="abcdefgh-1234", user_id="volunteerJoe"):
            line = ConsoleFormatter(use_colors=False).format(_record())

        assert line.endswith("| Report created | req=abcdefgh user=volunteerJoe")


class TestLogContext:
    def test_restores_previous_values(self) -> None:
        token = request_id_var.set("outer")
        try:
            with LogContext(request_id="inner", unknown="ignored"):
                assert request_id_var.get() == "inner"
            assert request_id_var.get() == "outer"
            assert user_id_var.get() == ""
        finally:
            request_id_var.reset(token)
