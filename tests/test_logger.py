"""Tests for logger.py — setup_logging() and JsonFormatter.

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from markmate_workspace.logger import DEFAULT_LOG_FILE, JsonFormatter, setup_logging


@pytest.fixture
def basic_config():
    with patch("markmate_workspace.logger.logging.basicConfig") as mock_basic:
        yield mock_basic
    for handler in mock_basic.call_args[1]["handlers"]:
        handler.close()


def _handlers(mock_basic):
    return mock_basic.call_args[1]["handlers"]


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_cli_mode_logs_to_stderr(self, basic_config):
        setup_logging(mode="cli")

        basic_config.assert_called_once()
        handlers = _handlers(basic_config)
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert basic_config.call_args[1]["force"] is True

    def test_mcp_mode_logs_to_file_only(self, basic_config, tmp_path):
        log_file = tmp_path / "mcp.log"
        setup_logging(mode="mcp", log_file=str(log_file))

        handlers = _handlers(basic_config)
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == str(log_file)

    def test_mcp_mode_log_file_from_env(self, basic_config, tmp_path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        setup_logging(mode="mcp")

        assert _handlers(basic_config)[0].baseFilename == str(log_file)

    def test_cli_mode_with_log_file(self, basic_config, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = _handlers(basic_config)
        file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
        assert len(handlers) == 2
        assert len(file_handlers) == 1

    def test_debug_overrides_level(self, basic_config, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)

        assert basic_config.call_args[1]["level"] == logging.DEBUG

    def test_env_log_level_honored(self, basic_config, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")

        assert basic_config.call_args[1]["level"] == logging.ERROR

    def test_default_levels(self, basic_config, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert basic_config.call_args[1]["level"] == logging.INFO

        setup_logging(mode="mcp", log_file=str(tmp_path / "m.log"))
        assert basic_config.call_args[1]["level"] == logging.WARNING

    def test_json_format_uses_json_formatter(self, basic_config):
        setup_logging(mode="cli", debug_format="json")

        assert isinstance(_handlers(basic_config)[0].formatter, JsonFormatter)

    def test_third_party_silenced(self, basic_config):
        setup_logging(mode="cli")

        assert logging.getLogger("asyncio").level == logging.WARNING
        assert logging.getLogger("mcp").level == logging.WARNING

    def test_default_log_file_constant(self):
        assert DEFAULT_LOG_FILE.endswith("markmate-workspace.log")


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


def _record(msg, args=(), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="markmate.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_output(self):
        formatter = JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        data = json.loads(formatter.format(_record("Hello %s", ("world",))))

        assert set(data) == {"ts", "level", "logger", "msg"}
        assert data["level"] == "INFO"
        assert data["logger"] == "markmate.test"
        assert data["msg"] == "Hello world"

    def test_includes_exception(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("sync failed")
        except ValueError:
            exc_info = sys.exc_info()

        output = formatter.format(_record("boom", exc_info=exc_info, level=logging.ERROR))
        data = json.loads(output)

        assert "\n" not in output
        assert "ValueError" in data["exc"]
        assert "sync failed" in data["exc"]
