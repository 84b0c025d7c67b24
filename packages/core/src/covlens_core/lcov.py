"""LCOV tracefile decoding, encoding and shard merging."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from covlens_core.errors import ParseError
from covlens_core.models import BranchDetail, FileCoverage, FunctionDetail, LineDetail, MetricSummary

logger = logging.getLogger(__name__)

END_OF_RECORD = "end_of_record"


def _number(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def _branch_id(value: str) -> int | str:
    # Block and branch ids may be symbolic, e.g. "e0" for exception branches.
    number = _number(value)
    return value.strip() if number is None else number


@dataclass
class _RecordBuilder:
    """Mutable accumulator for the record currently being decoded."""

    file: str = ""
    lines_found: int = 0
    lines_hit: int = 0
    functions_found: int = 0
    functions_hit: int = 0
    branches_found: int = 0
    branches_hit: int = 0
    lines: list[LineDetail] = field(default_factory=list)
    functions: list[FunctionDetail] = field(default_factory=list)
    branches: list[BranchDetail] = field(default_factory=list)

    def set_function_hit(self, name: str, hit: int) -> None:
        # FNDA completes the first FN with the same name that has no count yet.
        for k, fn in enumerate(self.functions):
            if fn.name == name and fn.hit is None:
                self.functions[k] = replace(fn, hit=hit)
                return

    def build(self) -> FileCoverage:
        return FileCoverage(
            file=self.file,
            lines=MetricSummary(self.lines_found, self.lines_hit, tuple(self.lines)),
            functions=MetricSummary(self.functions_found, self.functions_hit, tuple(self.functions)),
            branches=MetricSummary(self.branches_found, self.branches_hit, tuple(self.branches)),
        )


def _apply(item: _RecordBuilder, directive: str, value: str) -> None:
    if directive == "SF":
        item.file = value.strip()
    elif directive == "DA":
        parts = value.split(",")
        line = _number(parts[0])
        hit = _number(parts[1]) if len(parts) > 1 else None
        if line is None or hit is None:
            logger.debug("Ignoring malformed DA entry %r in %s", value, item.file)
            return
        item.lines.append(LineDetail(line=line, hit=hit))
    elif directive == "FN":
        parts = value.split(",")
        name = parts[1] if len(parts) > 1 else None
        if name is None:
            logger.debug("Ignoring malformed FN entry %r in %s", value, item.file)
            return
        item.functions.append(FunctionDetail(name=name, line=_number(parts[0])))
    elif directive == "FNDA":
        parts = value.split(",")
        hit = _number(parts[0])
        if hit is None or len(parts) < 2:
            logger.debug("Ignoring malformed FNDA entry %r in %s", value, item.file)
            return
        item.set_function_hit(parts[1], hit)
    elif directive == "BRDA":
        parts = value.split(",")
        if len(parts) < 4:
            logger.debug("Ignoring malformed BRDA entry %r in %s", value, item.file)
            return
        line = _number(parts[0])
        taken = 0 if parts[3].strip() == "-" else _number(parts[3])
        if line is None or taken is None:
            logger.debug("Ignoring malformed BRDA entry %r in %s", value, item.file)
            return
        block, branch = _branch_id(parts[1]), _branch_id(parts[2])
        item.branches.append(BranchDetail(line=line, block=block, branch=branch, taken=taken))
    elif directive in _AGGREGATES:
        count = _number(value)
        if count is not None:
            setattr(item, _AGGREGATES[directive], count)


_AGGREGATES = {
    "LF": "lines_found",
    "LH": "lines_hit",
    "FNF": "functions_found",
    "FNH": "functions_hit",
    "BRF": "branches_found",
    "BRH": "branches_hit",
}


def parse_lcov(text: str) -> list[FileCoverage]:
    """Decode an LCOV tracefile into one FileCoverage per record, in report order.

    A synthetic ``end_of_record`` is prepended so content before the first real
    boundary still closes into a record; the record that synthetic marker
    produces is discarded. Content after the final ``end_of_record`` is never
    closed and therefore dropped.

    Raises ParseError when no complete record was decoded.
    """
    records: list[FileCoverage] = []
    item = _RecordBuilder()

    for raw in [END_OF_RECORD, *text.split("\n")]:
        line = raw.strip()
        directive, _, value = line.partition(":")
        _apply(item, directive.upper(), value)

        if END_OF_RECORD in line:
            records.append(item.build())
            item = _RecordBuilder()

    records = records[1:]
    if not records:
        raise ParseError("Failed to parse coverage report: no complete LCOV records found.")
    return records


def render_lcov(records: list[FileCoverage]) -> str:
    """Encode records back into LCOV text that parse_lcov accepts."""
    out: list[str] = []
    for record in records:
        out.append(f"SF:{record.file}")
        for fn in record.functions.details:
            out.append(f"FN:{'' if fn.line is None else fn.line},{fn.name}")
        for fn in record.functions.details:
            if fn.hit is not None:
                out.append(f"FNDA:{fn.hit},{fn.name}")
        out.append(f"FNF:{record.functions.found}")
        out.append(f"FNH:{record.functions.hit}")
        for d in record.lines.details:
            out.append(f"DA:{d.line},{d.hit}")
        out.append(f"LF:{record.lines.found}")
        out.append(f"LH:{record.lines.hit}")
        for b in record.branches.details:
            out.append(f"BRDA:{b.line},{b.block},{b.branch},{b.taken}")
        out.append(f"BRF:{record.branches.found}")
        out.append(f"BRH:{record.branches.hit}")
        out.append(END_OF_RECORD)
    return "\n".join(out) + "\n"


def _by_line(entry) -> int:
    # Ids can mix ints and strings, so order by line and keep first-seen order within it.
    return entry[0][0]


def merge_reports(reports: list[list[FileCoverage]]) -> list[FileCoverage]:
    """Merge several decoded reports into one, file by file.

    Counts for the same line, function name, or (line, block, branch) are
    summed. Found/hit totals are recomputed from the merged details. File
    order is first-seen order across the inputs.
    """
    lines: dict[str, dict[int, int]] = {}
    functions: dict[str, dict[str, FunctionDetail]] = {}
    branches: dict[str, dict[tuple, int]] = {}

    for report in reports:
        for record in report:
            file_lines = lines.setdefault(record.file, {})
            file_functions = functions.setdefault(record.file, {})
            file_branches = branches.setdefault(record.file, {})

            for d in record.lines.details:
                file_lines[d.line] = file_lines.get(d.line, 0) + d.hit

            for fn in record.functions.details:
                existing = file_functions.get(fn.name)
                if existing is None:
                    file_functions[fn.name] = fn
                elif fn.hit is not None:
                    file_functions[fn.name] = replace(existing, hit=(existing.hit or 0) + fn.hit)

            for b in record.branches.details:
                key = (b.line, b.block, b.branch)
                file_branches[key] = file_branches.get(key, 0) + b.taken

    merged: list[FileCoverage] = []
    for path, file_lines in lines.items():
        line_details = tuple(LineDetail(line=n, hit=h) for n, h in sorted(file_lines.items()))
        fn_details = tuple(functions[path].values())
        br_details = tuple(
            BranchDetail(line=k[0], block=k[1], branch=k[2], taken=t)
            for k, t in sorted(branches[path].items(), key=_by_line)
        )
        merged.append(
            FileCoverage(
                file=path,
                lines=MetricSummary(len(line_details), sum(1 for d in line_details if d.hit > 0), line_details),
                functions=MetricSummary(len(fn_details), sum(1 for f in fn_details if f.hit), fn_details),
                branches=MetricSummary(len(br_details), sum(1 for b in br_details if b.taken > 0), br_details),
            )
        )
    return merged
