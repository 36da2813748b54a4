"""Tests for mcp/tools/errors.py — error response builders and utilities.

Covers:
- build_error_response() structure and format
- translate_git_error() corrective actions
- require() and format_timestamp()
"""

from datetime import datetime, timezone

import mcp.types as types
import pytest

from markmate_workspace.errors import GitOperationError
from markmate_workspace.mcp.tools.errors import (
    build_error_response,
    format_timestamp,
    require,
    text_result,
    translate_git_error,
)


def _get_error_text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestBuildErrorResponse:
    def test_structure(self):
        result = build_error_response("validation_error", "path is required", "Provide path.")

        assert result.isError is True
        assert len(result.content) == 1
        assert _get_error_text(result) == (
            "Error (validation_error): path is required\n\nAction: Provide path."
        )


class TestTranslateGitError:
    """translate_git_error() picks an action from the git failure."""

    def test_conflict(self):
        error = GitOperationError(
            ["pull", "--rebase"], "CONFLICT (content): Merge conflict in A.md", 1
        )
        text = _get_error_text(translate_git_error(error))

        assert text.startswith("Error (git_error): git pull --rebase failed")
        assert "doc_resolve_conflict" in text

    def test_timeout_or_missing_git(self):
        error = GitOperationError(["fetch"], "timed out after 120s")
        assert "installed" in _get_error_text(translate_git_error(error))

    def test_authentication(self):
        error = GitOperationError(
            ["push"], "fatal: Could not read from remote repository.", 128
        )
        assert "credentials" in _get_error_text(translate_git_error(error))

    def test_remote_not_configured(self):
        error = GitOperationError(["remote"], "Remote 'origin' is not configured", 1)
        assert "config.yml" in _get_error_text(translate_git_error(error))

    def test_fallback(self):
        error = GitOperationError(["log"], "fatal: bad revision", 128)
        assert "workspace_info" in _get_error_text(translate_git_error(error))


class TestHelpers:
    def test_require(self):
        assert require({"path": "A.md"}, "path") == "A.md"
        for args in ({}, {"path": None}, {"path": ""}):
            with pytest.raises(ValueError, match="path is required"):
                require(args, "path")

    def test_text_result(self):
        result = text_result("hi", {"a": 1})
        assert not result.isError
        assert result.structuredContent == {"a": 1}

    @pytest.mark.parametrize(
        "value,expected",
        [
            (datetime(2024, 3, 1, 9, 5, tzinfo=timezone.utc), "2024-03-01 09:05"),
            (None, "unknown"),
            ("yesterday", "yesterday"),
        ],
    )
    def test_format_timestamp(self, value, expected):
        assert format_timestamp(value) == expected
