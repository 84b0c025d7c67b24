"""Correlate diff ranges with coverage records.

A new line only counts toward the new-lines aggregate when the report has a
DA entry for it. Lines the coverage tool never instrumented (blank lines,
comments, type declarations) are invisible to the statistics, and so are
files missing from the report altogether.
"""

from __future__ import annotations

import logging

from covlens_core.models import (
    METRIC_KINDS,
    AnalysisResult,
    CoverageAggregate,
    FileCoverage,
    FileDiff,
    UncoveredItem,
)
from covlens_core.utils.paths import find_file_coverage

logger = logging.getLogger(__name__)

ALL = "all"


def has_line_entry(line_number: int, file_coverage: FileCoverage) -> bool:
    return any(d.line == line_number for d in file_coverage.lines.details)


def is_line_covered(line_number: int, file_coverage: FileCoverage) -> bool:
    # First DA entry for the line wins; duplicates are ignored.
    for d in file_coverage.lines.details:
        if d.line == line_number:
            return d.hit > 0
    return False


def is_uncovered(line_number: int, details) -> bool:
    """True if any entry at this line was instrumented but never executed."""
    return any(d.line == line_number and d.unexecuted for d in details)


def uncovered_items_for_line(
    line_number: int, file_coverage: FileCoverage, types_to_cover: list[str]
) -> list[UncoveredItem]:
    items: list[UncoveredItem] = []
    for kind in types_to_cover:
        kinds = METRIC_KINDS if kind == ALL else (kind,)
        for k in kinds:
            if k not in METRIC_KINDS:
                continue
            if is_uncovered(line_number, file_coverage.metric(k).details):
                items.append(UncoveredItem(line_number=line_number, annotation_type=k))
    return items


def analyze(file_diffs: list[FileDiff], coverage: list[FileCoverage], types_to_cover: list[str]) -> AnalysisResult:
    """Find uncovered new code and the new-lines aggregate in one pass.

    Diff files are visited in diff order, ranges in hunk order and lines in
    ascending order, so the uncovered items come out in that order too.
    """
    uncovered: dict[str, tuple[UncoveredItem, ...]] = {}
    total = 0
    covered = 0

    for file_diff in file_diffs:
        file_coverage = find_file_coverage(coverage, file_diff.file_name)
        if file_coverage is None:
            logger.debug("%s not found in coverage report; ignoring it.", file_diff.file_name)
            continue

        items: list[UncoveredItem] = []
        for changed in file_diff.ranges:
            for line_number in changed.line_numbers():
                items.extend(uncovered_items_for_line(line_number, file_coverage, types_to_cover))
                if has_line_entry(line_number, file_coverage):
                    total += 1
                    if is_line_covered(line_number, file_coverage):
                        covered += 1

        if items:
            uncovered[file_diff.file_name] = tuple(items)

    return AnalysisResult(
        uncovered=uncovered,
        aggregate=CoverageAggregate(total_new_lines=total, covered_new_lines=covered),
    )


def uncovered_new_lines(file_diffs: list[FileDiff], coverage: list[FileCoverage]) -> list[tuple[str, int]]:
    """Every instrumented new line with a zero hit count, as (file, line)."""
    out: list[tuple[str, int]] = []
    for file_diff in file_diffs:
        file_coverage = find_file_coverage(coverage, file_diff.file_name)
        if file_coverage is None:
            continue
        for changed in file_diff.ranges:
            for line_number in changed.line_numbers():
                if has_line_entry(line_number, file_coverage) and not is_line_covered(line_number, file_coverage):
                    out.append((file_diff.file_name, line_number))
    return out
