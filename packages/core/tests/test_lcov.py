"""Tests for LCOV decoding, encoding and shard merging."""

import pytest

from covlens_core.analyzer import analyze
from covlens_core.errors import ParseError
from covlens_core.lcov import merge_reports, parse_lcov, render_lcov
from covlens_core.models import (
    BranchDetail,
    ChangedRange,
    FileDiff,
    FunctionDetail,
    LineDetail,
    UncoveredItem,
)

REPORT = """\
TN:
SF:/repo/src/app.js
FN:3,start
FN:9,stop
FNDA:2,start
FNDA:0,stop
FNF:2
FNH:1
DA:3,2
DA:4,0
DA:9,0
LF:3
LH:1
BRDA:4,0,0,1
BRDA:4,0,1,-
BRF:2
BRH:1
end_of_record
SF:/repo/src/util.js
DA:1,5
end_of_record
"""


class TestParseLcov:
    def test_records_in_report_order(self):
        records = parse_lcov(REPORT)
        assert [r.file for r in records] == ["/repo/src/app.js", "/repo/src/util.js"]

    def test_line_details(self):
        app = parse_lcov(REPORT)[0]
        assert app.lines.details == (
            LineDetail(line=3, hit=2),
            LineDetail(line=4, hit=0),
            LineDetail(line=9, hit=0),
        )
        assert app.lines.found == 3
        assert app.lines.hit == 1

    def test_fnda_completes_matching_function(self):
        app = parse_lcov(REPORT)[0]
        assert app.functions.details == (
            FunctionDetail(name="start", line=3, hit=2),
            FunctionDetail(name="stop", line=9, hit=0),
        )
        assert (app.functions.found, app.functions.hit) == (2, 1)

    def test_dash_taken_decodes_as_zero(self):
        app = parse_lcov(REPORT)[0]
        assert app.branches.details == (
            BranchDetail(line=4, block=0, branch=0, taken=1),
            BranchDetail(line=4, block=0, branch=1, taken=0),
        )
        assert (app.branches.found, app.branches.hit) == (2, 1)

    def test_function_without_fnda_keeps_hit_unset(self):
        records = parse_lcov("SF:a.js\nFN:1,lonely\nend_of_record\n")
        assert records[0].functions.details[0].hit is None

    def test_fnda_fills_first_unset_duplicate_only(self):
        text = "SF:a.js\nFN:1,dup\nFN:5,dup\nFNDA:3,dup\nFNDA:0,dup\nend_of_record\n"
        fns = parse_lcov(text)[0].functions.details
        assert [f.hit for f in fns] == [3, 0]

    def test_directives_are_case_insensitive(self):
        records = parse_lcov("sf:a.js\nda:1,1\nend_of_record\n")
        assert records[0].file == "a.js"
        assert records[0].lines.details == (LineDetail(line=1, hit=1),)

    def test_windows_line_endings(self):
        records = parse_lcov("SF:a.js\r\nDA:2,0\r\nend_of_record\r\n")
        assert records[0].lines.details == (LineDetail(line=2, hit=0),)

    def test_unknown_directives_ignored(self):
        records = parse_lcov("TN:suite\nVER:2\nSF:a.js\nXYZ:1\nend_of_record\n")
        assert records[0].file == "a.js"

    def test_malformed_da_entry_dropped(self):
        records = parse_lcov("SF:a.js\nDA:x,1\nDA:2,1\nend_of_record\n")
        assert records[0].lines.details == (LineDetail(line=2, hit=1),)

    def test_symbolic_branch_ids_kept(self):
        records = parse_lcov("SF:a.js\nDA:5,1\nBRDA:5,e0,0,0\nBRDA:6,0,x>0,-\nend_of_record\n")
        assert records[0].branches.details == (
            BranchDetail(line=5, block="e0", branch=0, taken=0),
            BranchDetail(line=6, block=0, branch="x>0", taken=0),
        )

    def test_symbolic_branch_reported_uncovered(self):
        coverage = parse_lcov("SF:a.js\nDA:5,1\nBRDA:5,e0,0,0\nend_of_record\n")
        diff = FileDiff(file_name="a.js", ranges=(ChangedRange(start_line=5),))
        assert analyze([diff], coverage, ["branches"]).uncovered == {"a.js": (UncoveredItem(5, "branches"),)}

    def test_branch_with_bad_line_dropped(self):
        records = parse_lcov("SF:a.js\nBRDA:x,0,0,1\nend_of_record\n")
        assert records[0].branches.details == ()

    def test_record_without_trailing_marker_is_lost(self):
        records = parse_lcov("SF:a.js\nDA:1,1\nend_of_record\nSF:b.js\nDA:1,0\n")
        assert [r.file for r in records] == ["a.js"]

    def test_raises_when_no_records(self):
        with pytest.raises(ParseError):
            parse_lcov("this is not a coverage report")

    def test_raises_on_empty_input(self):
        with pytest.raises(ParseError):
            parse_lcov("")


class TestRenderLcov:
    def test_rendered_text_decodes_to_same_records(self):
        records = parse_lcov(REPORT)
        assert parse_lcov(render_lcov(records)) == records


class TestMergeReports:
    def test_sums_counts_for_same_file(self):
        shard_a = parse_lcov("SF:a.js\nFN:1,f\nFNDA:0,f\nDA:1,0\nDA:2,1\nBRDA:2,0,0,0\nend_of_record\n")
        shard_b = parse_lcov("SF:a.js\nFN:1,f\nFNDA:4,f\nDA:1,3\nBRDA:2,0,0,-\nend_of_record\n")

        merged = merge_reports([shard_a, shard_b])

        assert len(merged) == 1
        a = merged[0]
        assert a.lines.details == (LineDetail(line=1, hit=3), LineDetail(line=2, hit=1))
        assert (a.lines.found, a.lines.hit) == (2, 2)
        assert a.functions.details == (FunctionDetail(name="f", line=1, hit=4),)
        assert a.branches.details == (BranchDetail(line=2, block=0, branch=0, taken=0),)
        assert (a.branches.found, a.branches.hit) == (1, 0)

    def test_keeps_first_seen_file_order(self):
        shard_a = parse_lcov("SF:b.js\nDA:1,1\nend_of_record\n")
        shard_b = parse_lcov("SF:a.js\nDA:1,1\nend_of_record\nSF:b.js\nDA:2,0\nend_of_record\n")
        assert [r.file for r in merge_reports([shard_a, shard_b])] == ["b.js", "a.js"]

    def test_mixed_branch_ids_merge(self):
        shard_a = parse_lcov("SF:a.js\nBRDA:5,0,0,1\nBRDA:5,e0,0,0\nend_of_record\n")
        shard_b = parse_lcov("SF:a.js\nBRDA:5,e0,0,2\nend_of_record\n")
        merged = merge_reports([shard_a, shard_b])[0]
        assert merged.branches.details == (
            BranchDetail(line=5, block=0, branch=0, taken=1),
            BranchDetail(line=5, block="e0", branch=0, taken=2),
        )
