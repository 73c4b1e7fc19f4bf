from __future__ import annotations

import pytest

from mcp_vmanomaly import __version__
from mcp_vmanomaly.cli import main


def test_missing_endpoint_reports_config_error(monkeypatch, capsys):
    monkeypatch.delenv("VMANOMALY_ENDPOINT", raising=False)

    assert main([]) == 1
    assert "Error initializing config: VMANOMALY_ENDPOINT is required" in capsys.readouterr().err


def test_invalid_mode_reports_config_error(monkeypatch, capsys):
    monkeypatch.setenv("VMANOMALY_ENDPOINT", "http://vmanomaly:8490")
    monkeypatch.setenv("MCP_SERVER_MODE", "websocket")

    assert main([]) == 1
    assert "MCP_SERVER_MODE" in capsys.readouterr().err


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out
