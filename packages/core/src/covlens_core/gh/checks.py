"""Publish analysis results to GitHub: a check run and a sticky PR comment."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from github import Github

from covlens_core.models import AnalysisResult

logger = logging.getLogger(__name__)

CHECK_TITLE = "Test Coverage Annotate🔎"
COMMENT_MARKER = "<!-- covlens-coverage -->"

# The Checks API accepts at most 50 annotations per request.
ANNOTATION_BATCH_SIZE = 50


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def coverage_line(result: AnalysisResult, threshold: int) -> str:
    agg = result.aggregate
    return (
        f"**New lines coverage:** {agg.covered_new_lines}/{agg.total_new_lines} "
        f"({agg.rounded_percentage}%) · threshold {threshold}%"
    )


def build_check_summary(result: AnalysisResult, threshold: int, annotation_count: int) -> str:
    """Build the markdown summary shown on the check run page."""
    lines = [coverage_line(result, threshold), ""]

    if annotation_count == 0:
        lines.append("All Good! We found No Uncovered Lines of Code in your Pull Request.🚀")
    else:
        lines.append(
            f"### Found a Total of {annotation_count} Instances of Uncovered Code "
            f"in {len(result.uncovered)} Files!⚠️"
        )
        lines.append("")
        lines.append("File Name | No. of Warnings")
        lines.append("--------- | ---------------")
        for path, items in result.uncovered.items():
            lines.append(f"{path} | {len(items)}")

    if not result.aggregate.meets_threshold(threshold):
        lines.append("")
        lines.append(
            f"❌ **Check failed:** New lines coverage {result.aggregate.rounded_percentage}% "
            f"is below the required {threshold}%."
        )

    return "\n".join(lines)


def build_comment_body(result: AnalysisResult, threshold: int) -> str:
    """Build the PR comment body. The marker lets later runs find and update it."""
    agg = result.aggregate
    passed = agg.meets_threshold(threshold)
    warnings = result.total_warnings
    status = "✅ **Passed**" if passed else "❌ **Failed**"
    heading = "✅ Unit coverage — passed" if passed else "❌ Unit coverage — failed"
    threshold_label = "Threshold" if passed else "Required threshold"

    lines = [
        COMMENT_MARKER,
        "",
        "<details open>",
        f"<summary><strong>{heading}</strong></summary>",
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| **Status** | {status} |",
        f"| **New lines coverage** | **{agg.covered_new_lines}** / **{agg.total_new_lines}** lines "
        f"(**{agg.rounded_percentage}%**) |",
        f"| **{threshold_label}** | {threshold}% |",
        f"| **Uncovered instances** | {warnings} in {len(result.uncovered)} file(s) |",
        "",
    ]

    if not passed:
        lines.append(
            f"New lines coverage is below the required {threshold}%. "
            "Please add or update tests for the changed code."
        )
        lines.append("")

    if warnings:
        lines.append("### Uncovered code by file")
        lines.append("")
        lines.append("| File | Warnings |")
        lines.append("| --- | --- |")
        for path, items in result.uncovered.items():
            lines.append(f"| {path} | {len(items)} |")
        lines.append("")
    elif passed:
        lines.append("All new/changed lines meet the coverage threshold.")
        lines.append("")

    lines.append("</details>")
    return "\n".join(lines) + "\n"


def create_check_run(repo, head_sha: str, name: str):
    return repo.create_check_run(
        name=name,
        head_sha=head_sha,
        status="in_progress",
        started_at=datetime.now(timezone.utc),
    )


def push_annotations(check_run, annotations: list[dict], summary: str) -> int:
    """Attach annotations to the check run in API-sized batches. Returns the batch count."""
    batches = [annotations[i : i + ANNOTATION_BATCH_SIZE] for i in range(0, len(annotations), ANNOTATION_BATCH_SIZE)]
    for batch in batches:
        check_run.edit(output={"title": CHECK_TITLE, "summary": summary, "annotations": batch})
        logger.debug("Pushed %d annotation(s) to check run %s", len(batch), check_run.id)
    return len(batches)


def complete_check_run(check_run, summary: str, success: bool) -> None:
    check_run.edit(
        status="completed",
        conclusion="success" if success else "failure",
        completed_at=datetime.now(timezone.utc),
        output={"title": CHECK_TITLE, "summary": summary},
    )


def upsert_coverage_comment(pr, body: str) -> str:
    """Create the coverage comment, or update the one a previous run left.

    Returns "updated" or "created".
    """
    for comment in pr.get_issue_comments():
        if COMMENT_MARKER in (comment.body or ""):
            comment.edit(body)
            return "updated"
    pr.create_issue_comment(body)
    return "created"
