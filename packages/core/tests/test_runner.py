"""Tests for the end-to-end coverage check."""

from unittest.mock import MagicMock

import pytest

from covlens_core.errors import ParseError
from covlens_core.models import ChangedRange, FileDiff
from covlens_core.runner import analyze_changes, run_check

LCOV = """\
SF:/github/workspace/controllers/app.js
DA:12,0
DA:13,1
end_of_record
"""

DIFFS = [
    FileDiff(file_name="controllers/app.js", ranges=(ChangedRange(start_line=12, span_count=2),)),
    FileDiff(file_name="README.md", ranges=(ChangedRange(start_line=1),)),
]


def _config(**overrides):
    config = {
        "coverage_info_path": LCOV,
        "total_coverage_files": 1,
        "annotation_type": ["all"],
        "annotation_coverage": "detailed",
        "threshold": 90,
        "include": [],
        "exclude": [],
        "coverage_extensions": [".js", ".ts"],
        "base_ref": "HEAD^1",
        "check_name": "Test Coverage Annotate",
        "post_comment": True,
        "debug": False,
        "cache_dir": "coverage",
        "github_token": "token",
        "workspace": "",
    }
    config.update(overrides)
    return config


def _repo():
    repo = MagicMock()
    pr = MagicMock()
    pr.head.sha = "abc123"
    pr.get_issue_comments.return_value = []
    repo.get_pull.return_value = pr
    return repo, pr


class TestAnalyzeChanges:
    def test_filters_analyzes_and_formats(self):
        summary = analyze_changes(_config(), DIFFS)

        assert summary.considered_files == ["controllers/app.js"]
        assert summary.excluded_files == [("README.md", "not_valid_for_coverage")]
        assert summary.percentage == 50
        assert summary.meets_threshold is False
        assert [(a["path"], a["start_line"], a["message"]) for a in summary.annotations] == [
            ("controllers/app.js", 12, "line not covered!")
        ]

    def test_diff_taken_from_git_when_not_given(self, mocker):
        get_diff = mocker.patch("covlens_core.runner.get_diff_with_line_numbers", return_value=DIFFS)
        analyze_changes(_config(base_ref="origin/main"))
        get_diff.assert_called_once_with("origin/main")

    def test_debug_report_printed(self, mocker):
        filter_summary = mocker.patch("covlens_core.runner.print_file_filter_summary")
        uncovered = mocker.patch("covlens_core.runner.print_uncovered_lines")

        analyze_changes(_config(debug=True), DIFFS)

        filter_summary.assert_called_once()
        assert uncovered.call_args.args[0] == [("controllers/app.js", 12)]


class TestRunCheck:
    def test_shadow_mode_does_not_touch_github(self, mocker):
        get_repo = mocker.patch("covlens_core.runner.get_repo")
        summary = run_check(_config(), shadow=True, file_diffs=DIFFS)
        get_repo.assert_not_called()
        assert summary.percentage == 50

    def test_publishes_check_run_and_comment(self):
        repo, pr = _repo()
        check_run = repo.create_check_run.return_value

        summary = run_check(_config(threshold=50), pr_number=7, repo_obj=repo, file_diffs=DIFFS)

        assert summary.meets_threshold is True
        assert repo.create_check_run.call_args.kwargs["head_sha"] == "abc123"
        final = check_run.edit.call_args_list[-1].kwargs
        assert final["conclusion"] == "success"
        assert len(check_run.edit.call_args_list[0].kwargs["output"]["annotations"]) == 1
        pr.create_issue_comment.assert_called_once()

    def test_below_threshold_fails_check(self):
        repo, _ = _repo()
        run_check(_config(), pr_number=7, repo_obj=repo, file_diffs=DIFFS)
        assert repo.create_check_run.return_value.edit.call_args_list[-1].kwargs["conclusion"] == "failure"

    def test_comment_skipped_when_disabled(self):
        repo, pr = _repo()
        run_check(_config(post_comment=False), pr_number=7, repo_obj=repo, file_diffs=DIFFS)
        pr.create_issue_comment.assert_not_called()

    def test_fatal_input_completes_check_as_failure(self):
        repo, _ = _repo()
        check_run = repo.create_check_run.return_value

        with pytest.raises(ParseError):
            run_check(_config(coverage_info_path="not lcov"), pr_number=7, repo_obj=repo, file_diffs=DIFFS)

        final = check_run.edit.call_args.kwargs
        assert final["status"] == "completed"
        assert final["conclusion"] == "failure"
        assert "could not run" in final["output"]["summary"]

    def test_comment_failure_is_not_fatal(self):
        repo, pr = _repo()
        pr.get_issue_comments.side_effect = RuntimeError("403 Forbidden")

        summary = run_check(_config(threshold=50), pr_number=7, repo_obj=repo, file_diffs=DIFFS)

        assert summary.meets_threshold is True
        assert repo.create_check_run.return_value.edit.call_args_list[-1].kwargs["conclusion"] == "success"
