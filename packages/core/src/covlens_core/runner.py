"""End-to-end coverage check for one pull request."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rich.console import Console

from covlens_core.analyzer import analyze, uncovered_new_lines
from covlens_core.annotations import create_annotations
from covlens_core.debug import missing_from_coverage, print_file_filter_summary, print_uncovered_lines
from covlens_core.errors import CovlensError
from covlens_core.gh.checks import (
    build_check_summary,
    build_comment_body,
    complete_check_run,
    create_check_run,
    get_pull,
    get_repo,
    push_annotations,
    upsert_coverage_comment,
)
from covlens_core.git.diff import get_diff_with_line_numbers
from covlens_core.models import AnalysisResult, FileDiff
from covlens_core.sources import load_coverage_report
from covlens_core.utils.code import filter_file_diffs_with_reasons

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class CheckSummary:
    """What a coverage check run produced, for the CLI to report and exit on."""

    result: AnalysisResult
    threshold: int
    annotations: list[dict] = field(default_factory=list)
    considered_files: list[str] = field(default_factory=list)
    excluded_files: list[tuple[str, str]] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        return self.result.aggregate.rounded_percentage

    @property
    def meets_threshold(self) -> bool:
        return self.result.aggregate.meets_threshold(self.threshold)


def analyze_changes(config: dict, file_diffs: list[FileDiff] | None = None) -> CheckSummary:
    """Diff, filter, load coverage, correlate and format. No GitHub involved."""
    if file_diffs is None:
        file_diffs = get_diff_with_line_numbers(config["base_ref"])

    considered, excluded = filter_file_diffs_with_reasons(
        file_diffs, config.get("include"), config.get("exclude"), config.get("coverage_extensions")
    )
    if not considered:
        console.print("[yellow]No files matched the coverage filters.[/yellow]")

    coverage = load_coverage_report(
        config["coverage_info_path"],
        config.get("total_coverage_files", 1),
        config.get("cache_dir", "coverage"),
    )
    result = analyze(considered, coverage, config["annotation_type"])
    annotations = create_annotations(result.uncovered, config["annotation_coverage"], config.get("workspace", ""))

    if config.get("debug"):
        print_file_filter_summary(considered, excluded, missing_from_coverage(considered, coverage))
        print_uncovered_lines(uncovered_new_lines(considered, coverage), result, config["threshold"], coverage)

    return CheckSummary(
        result=result,
        threshold=config["threshold"],
        annotations=annotations,
        considered_files=[f.file_name for f in considered],
        excluded_files=excluded,
    )


def print_shadow_annotations(summary: CheckSummary) -> None:
    """Print the annotations and gate result to the terminal instead of GitHub."""
    agg = summary.result.aggregate
    if not summary.annotations:
        console.print("[green]No uncovered new code found.[/green]")
    else:
        console.print(f"\n[bold]Shadow check — {len(summary.annotations)} annotation(s) (not posted)[/bold]\n")
        for a in summary.annotations:
            console.print(f"[bold cyan]{a['path']}[/bold cyan]  line [bold]{a['start_line']}[/bold]")
            console.print(f"  {a['message'].rstrip()}", markup=False)
    color = "green" if summary.meets_threshold else "red"
    console.print(
        f"\n[{color}]New lines coverage: {agg.covered_new_lines}/{agg.total_new_lines} "
        f"({summary.percentage}%) · threshold {summary.threshold}%[/{color}]"
    )


def run_check(
    config: dict,
    repo: str | None = None,
    pr_number: int | None = None,
    shadow: bool = False,
    repo_obj=None,
    file_diffs: list[FileDiff] | None = None,
) -> CheckSummary:
    """Run the coverage check and publish it unless ``shadow`` is set.

    The check run is opened before any analysis so a fatal input error still
    leaves a failed check on the PR rather than a missing one. The error is
    re-raised afterwards.
    """
    if shadow:
        summary = analyze_changes(config, file_diffs)
        print_shadow_annotations(summary)
        return summary

    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])
    this_pr = get_pull(this_repo, pr_number)
    check_run = create_check_run(this_repo, this_pr.head.sha, config["check_name"])
    logger.info("Created check run %s", check_run.id)

    try:
        summary = analyze_changes(config, file_diffs)
    except CovlensError as e:
        complete_check_run(check_run, f"❌ **Coverage check could not run:** {e}", success=False)
        raise

    body = build_check_summary(summary.result, summary.threshold, len(summary.annotations))
    push_annotations(check_run, summary.annotations, body)
    complete_check_run(check_run, body, success=summary.meets_threshold)
    console.print(
        f"[green]Check run completed: {'success' if summary.meets_threshold else 'failure'} "
        f"({len(summary.annotations)} annotation(s)).[/green]"
    )

    if config.get("post_comment", True):
        try:
            action = upsert_coverage_comment(this_pr, build_comment_body(summary.result, summary.threshold))
            console.print(f"Coverage comment {action} on PR #{pr_number}.")
        except Exception as e:
            # Non-fatal: the check run already holds the result.
            logger.warning("Could not post coverage comment on PR #%s: %s", pr_number, e)

    return summary
