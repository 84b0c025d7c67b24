"""Tests for matching coverage-report paths to diff paths."""

from covlens_core.models import FileCoverage
from covlens_core.utils.paths import find_file_coverage, normalize_path, paths_match


class TestPathsMatch:
    def test_equal_paths(self):
        assert paths_match("src/foo.ts", "src/foo.ts") is True

    def test_diff_path_ends_with_coverage_path(self):
        # Monorepo: the report is relative to the package, the diff to the repo root.
        assert (
            paths_match(
                "src/common/hooks/usePostMessageEvents.hooks.ts",
                "visual-editor-projects/visual-editor/src/common/hooks/usePostMessageEvents.hooks.ts",
            )
            is True
        )

    def test_coverage_path_ends_with_diff_path(self):
        assert paths_match("/repo/controllers/app.js", "controllers/app.js") is True

    def test_backslashes_normalised(self):
        assert paths_match("C:\\work\\repo\\src\\foo.ts", "src/foo.ts") is True

    def test_leading_slashes_ignored(self):
        assert paths_match("/src/foo.ts", "src/foo.ts") is True

    def test_unrelated_paths(self):
        assert paths_match("src/other.ts", "src/foo.ts") is False

    def test_no_match_across_extension_boundary(self):
        assert paths_match("src/foo.ts", "src/foo.ts.bak") is False

    def test_segment_boundary_required_for_suffix_rules(self):
        assert paths_match("oo.ts", "src/foo.ts") is False

    def test_loose_containment_fallback(self):
        # The diff path appears inside the coverage path without a segment boundary.
        assert paths_match("/build/xsrc/foo.ts.map", "src/foo.ts") is True


def test_normalize_path():
    assert normalize_path("\\\\a\\b/c") == "a/b/c"


class TestFindFileCoverage:
    def test_first_match_in_report_order_wins(self):
        first = FileCoverage(file="/a/src/foo.ts")
        second = FileCoverage(file="src/foo.ts")
        assert find_file_coverage([first, second], "src/foo.ts") is first

    def test_returns_none_when_absent(self):
        assert find_file_coverage([FileCoverage(file="src/bar.ts")], "src/foo.ts") is None
