"""Value objects shared by the decoders, the analyzer and the report layer.

Everything here is built fresh per run and never mutated afterwards, so the
dataclasses are frozen and collections are tuples.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

METRIC_KINDS = ("lines", "functions", "branches")


@dataclass(frozen=True)
class ChangedRange:
    """One contiguous block of added lines in a file."""

    start_line: int
    span_count: int = 1
    content_lines: tuple[str, ...] = ()

    def line_numbers(self) -> range:
        return range(self.start_line, self.start_line + max(self.span_count, 1))


@dataclass(frozen=True)
class FileDiff:
    file_name: str
    ranges: tuple[ChangedRange, ...] = ()


@dataclass(frozen=True)
class LineDetail:
    """A DA record: one instrumented source line."""

    line: int
    hit: int

    @property
    def unexecuted(self) -> bool:
        return self.hit == 0


@dataclass(frozen=True)
class FunctionDetail:
    """An FN record, completed by its FNDA record when the report has one."""

    name: str
    line: int | None
    hit: int | None = None

    @property
    def unexecuted(self) -> bool:
        return self.hit is not None and self.hit == 0


@dataclass(frozen=True)
class BranchDetail:
    """A BRDA record. A taken count of ``-`` is decoded as 0."""

    line: int
    block: int | str
    branch: int | str
    taken: int

    @property
    def unexecuted(self) -> bool:
        return self.taken == 0


@dataclass(frozen=True)
class MetricSummary:
    found: int = 0
    hit: int = 0
    details: tuple = ()


@dataclass(frozen=True)
class FileCoverage:
    file: str
    lines: MetricSummary = field(default_factory=MetricSummary)
    functions: MetricSummary = field(default_factory=MetricSummary)
    branches: MetricSummary = field(default_factory=MetricSummary)

    def metric(self, kind: str) -> MetricSummary:
        if kind not in METRIC_KINDS:
            raise ValueError(f"Unknown metric kind: {kind!r}. Choose one of {', '.join(METRIC_KINDS)}.")
        return getattr(self, kind)


@dataclass(frozen=True)
class UncoveredItem:
    line_number: int
    annotation_type: str  # "lines" | "functions" | "branches"

    def to_dict(self) -> dict:
        return {"lineNumber": self.line_number, "annotationType": self.annotation_type}


@dataclass(frozen=True)
class CoverageAggregate:
    total_new_lines: int = 0
    covered_new_lines: int = 0

    @property
    def percentage(self) -> float:
        if self.total_new_lines == 0:
            return 100.0
        return self.covered_new_lines / self.total_new_lines * 100

    @property
    def rounded_percentage(self) -> int:
        # Half-up, not banker's rounding: 62.5% reports as 63%.
        return math.floor(self.percentage + 0.5)

    def meets_threshold(self, threshold: int) -> bool:
        return self.total_new_lines == 0 or self.rounded_percentage >= threshold


@dataclass(frozen=True)
class AnalysisResult:
    """Uncovered items per diff file plus the new-lines aggregate.

    ``uncovered`` preserves diff order and only holds files with at least one
    item.
    """

    uncovered: dict[str, tuple[UncoveredItem, ...]] = field(default_factory=dict)
    aggregate: CoverageAggregate = field(default_factory=CoverageAggregate)

    @property
    def total_warnings(self) -> int:
        return sum(len(items) for items in self.uncovered.values())

    def to_dict(self) -> dict:
        return {
            "uncovered": {path: [i.to_dict() for i in items] for path, items in self.uncovered.items()},
            "totalNewLines": self.aggregate.total_new_lines,
            "coveredNewLines": self.aggregate.covered_new_lines,
        }
