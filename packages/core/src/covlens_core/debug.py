"""Diagnostic report: why files and lines did or did not count."""

from __future__ import annotations

from rich.console import Console

from covlens_core.analyzer import has_line_entry
from covlens_core.models import AnalysisResult, FileCoverage, FileDiff
from covlens_core.utils.code import REASON_LABELS
from covlens_core.utils.paths import find_file_coverage

console = Console()


def print_file_filter_summary(
    considered: list[FileDiff],
    excluded: list[tuple[str, str]],
    not_in_coverage: list[str],
) -> None:
    console.print("\n[bold]Coverage debug: files[/bold]")
    console.print("Considered for coverage (included by filters and in the diff):")
    if not considered:
        console.print("  (none)")
    for f in considered:
        marker = " [yellow]\\[NOT IN LCOV][/yellow]" if f.file_name in not_in_coverage else ""
        console.print(f"  - {f.file_name}{marker}")

    console.print("\nIgnored (excluded by filters):")
    if not excluded:
        console.print("  (none)")
    for file_name, reason in excluded:
        console.print(f"  - {file_name}")
        console.print(f"    [dim]Reason: {REASON_LABELS.get(reason, reason)}[/dim]")

    if not_in_coverage:
        console.print("\nConsidered but not found in coverage report:")
        for file_name in not_in_coverage:
            console.print(f"  - {file_name}")


def missing_from_coverage(file_diffs: list[FileDiff], coverage: list[FileCoverage]) -> list[str]:
    return [f.file_name for f in file_diffs if find_file_coverage(coverage, f.file_name) is None]


def _reason(file_name: str, line_number: int, result: AnalysisResult, coverage: list[FileCoverage]) -> str:
    kinds = [i.annotation_type for i in result.uncovered.get(file_name, ()) if i.line_number == line_number]
    if kinds:
        return f"({', '.join(kinds)})"
    file_coverage = find_file_coverage(coverage, file_name)
    if file_coverage is None:
        return "(file not in LCOV)"
    if not has_line_entry(line_number, file_coverage):
        return "(line has no DA entry in LCOV — not instrumented or coverage from different revision)"
    return "(no LCOV entry or file missing)"


def print_uncovered_lines(
    uncovered_lines: list[tuple[str, int]],
    result: AnalysisResult,
    threshold: int,
    coverage: list[FileCoverage],
) -> None:
    """Print every new line that lowers the percentage and by how much."""
    agg = result.aggregate
    per_line = 100 / agg.total_new_lines if agg.total_new_lines else 0.0

    console.print("\n[bold]Coverage debug: uncovered lines & percentage[/bold]")
    console.print(f"Total new/changed lines (considered): {agg.total_new_lines}")
    console.print(
        f"Covered: {agg.covered_new_lines} | Uncovered: {agg.total_new_lines - agg.covered_new_lines}"
    )
    console.print(f"New lines coverage: {agg.percentage:.2f}% (threshold: {threshold}%)")
    console.print(f"Each uncovered line contributes: {per_line:.2f}% (1/{agg.total_new_lines} of 100%)\n")

    console.print("All new lines NOT included in the covered count:")
    if not uncovered_lines:
        console.print("  (none)")
        return

    by_file: dict[str, list[int]] = {}
    for file_name, line_number in uncovered_lines:
        by_file.setdefault(file_name, []).append(line_number)
    for file_name in sorted(by_file):
        console.print(f"  {file_name}:")
        for line_number in sorted(by_file[file_name]):
            reason = _reason(file_name, line_number, result, coverage)
            console.print(f"    Line {line_number} → −{per_line:.2f}% {reason}", markup=False)
