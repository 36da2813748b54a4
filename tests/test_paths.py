"""Tests for links.paths — link text <-> root-relative path conversion."""

import pytest

from markmate_workspace.errors import PathEscapesWorkspace
from markmate_workspace.links.paths import (
    is_within,
    normalize_document_path,
    relative_from,
    relocate,
    resolve_relative,
    to_posix,
)

ROOT = "/home/user/notes"


class TestResolveRelative:
    """resolve_relative() joins link text onto the document's directory."""

    def test_sibling(self):
        assert resolve_relative(ROOT, "docs/A.md", "B.md") == "docs/B.md"

    def test_parent(self):
        assert resolve_relative(ROOT, "docs/A.md", "../README.md") == "README.md"

    def test_nested(self):
        assert (
            resolve_relative(ROOT, "docs/A.md", "guides/intro.md")
            == "docs/guides/intro.md"
        )

    def test_dot_segments_are_collapsed(self):
        assert resolve_relative(ROOT, "docs/A.md", "./x/../B.md") == "docs/B.md"

    def test_backslashes_are_accepted(self):
        assert resolve_relative(ROOT, "docs/A.md", "..\\img\\x.png") == "img/x.png"

    def test_root_level_document(self):
        assert resolve_relative(ROOT, "A.md", "B.md") == "B.md"

    def test_workspace_root_resolves_to_dot(self):
        assert resolve_relative(ROOT, "docs/A.md", "..") == "."

    def test_surrounding_whitespace_ignored(self):
        assert resolve_relative(ROOT, "docs/A.md", "  B.md ") == "docs/B.md"

    def test_escape_raises(self):
        with pytest.raises(PathEscapesWorkspace) as exc_info:
            resolve_relative(ROOT, "A.md", "../outside.md")
        assert exc_info.value.current == "A.md"
        assert exc_info.value.raw == "../outside.md"

    def test_deep_escape_raises(self):
        with pytest.raises(PathEscapesWorkspace):
            resolve_relative(ROOT, "docs/A.md", "../../../etc/passwd")

    def test_absolute_inside_root(self):
        assert (
            resolve_relative(ROOT, "docs/A.md", "/home/user/notes/img/x.png")
            == "img/x.png"
        )

    def test_absolute_outside_root_raises(self):
        with pytest.raises(PathEscapesWorkspace):
            resolve_relative(ROOT, "docs/A.md", "/etc/hosts")

    def test_windows_root_and_absolute_link(self):
        assert (
            resolve_relative("C:\\notes", "docs\\A.md", "C:\\notes\\img\\x.png")
            == "img/x.png"
        )

    def test_escape_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            resolve_relative(ROOT, "A.md", "../x.md")


class TestRelativeFrom:
    """relative_from() produces the shortest link text."""

    def test_same_directory(self):
        assert relative_from(ROOT, "docs/A.md", "docs/B.md") == "B.md"

    def test_into_subfolder(self):
        assert relative_from(ROOT, "docs/B.md", "docs/guides/A.md") == "guides/A.md"

    def test_up_two_levels(self):
        assert (
            relative_from(ROOT, "docs/guides/A.md", "README.md") == "../../README.md"
        )

    def test_sideways(self):
        assert relative_from(ROOT, "a/x.md", "b/y.md") == "../b/y.md"

    def test_own_directory_is_dot(self):
        assert relative_from(ROOT, "docs/A.md", "docs") == "."

    def test_from_root_document(self):
        assert relative_from(ROOT, "README.md", "docs/A.md") == "docs/A.md"

    def test_common_prefix_is_segment_based(self):
        assert relative_from(ROOT, "doc/A.md", "docs/B.md") == "../docs/B.md"

    @pytest.mark.parametrize(
        "current,target",
        [
            ("A.md", "B.md"),
            ("docs/A.md", "README.md"),
            ("docs/guides/A.md", "docs/B.md"),
            ("a/b/c/d.md", "x/y.md"),
            ("README.md", ".images/x.png"),
            ("docs/A.md", "docs"),
            ("docs/deep/A.md", "docs/deep/A.md"),
        ],
    )
    def test_inverse_of_resolve(self, current, target):
        text = relative_from(ROOT, current, target)
        assert resolve_relative(ROOT, current, text) == target


class TestNormalizeDocumentPath:
    """normalize_document_path() canonicalises root-relative input."""

    def test_strips_leading_dot_and_trailing_slash(self):
        assert normalize_document_path("./docs/") == "docs"

    def test_collapses_double_slashes(self):
        assert normalize_document_path("docs//A.md") == "docs/A.md"

    def test_backslashes(self):
        assert normalize_document_path("docs\\A.md") == "docs/A.md"

    @pytest.mark.parametrize("bad", ["", "  ", "/abs/A.md", "C:\\A.md", "../x.md", ".."])
    def test_rejects_invalid(self, bad):
        with pytest.raises(ValueError):
            normalize_document_path(bad)


class TestPrefixHelpers:
    """is_within() and relocate()."""

    def test_within_itself(self):
        assert is_within("docs", "docs")

    def test_within_child(self):
        assert is_within("docs/a/b.md", "docs")

    def test_not_within_prefix_sibling(self):
        assert not is_within("docsx/a.md", "docs")

    def test_relocate_exact(self):
        assert relocate("docs/A.md", "docs/A.md", "docs/guides/A.md") == "docs/guides/A.md"

    def test_relocate_child(self):
        assert relocate("docs/a/b.md", "docs", "archive/docs") == "archive/docs/a/b.md"

    def test_to_posix(self):
        assert to_posix("a\\b\\c.md") == "a/b/c.md"
