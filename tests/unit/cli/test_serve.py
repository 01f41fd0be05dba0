"""Tests for the serve CLI command."""

from __future__ import annotations

from typing import Any

import pytest
import uvicorn
from typer.testing import CliRunner

from aegis.cli import app

runner = CliRunner()


def test_runs_app_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(uvicorn, "run", lambda **kwargs: calls.append(kwargs))

    result = runner.invoke(app, ["serve", "--port", "9001", "--log-level", "DEBUG"])

    assert result.exit_code == 0
    (kwargs,) = calls
    assert kwargs["app"] == "aegis.api.app:create_app"
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9001
    assert kwargs["log_level"] == "debug"
    assert "Cache backend" in result.stdout
