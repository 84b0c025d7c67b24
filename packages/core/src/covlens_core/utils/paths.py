"""Match coverage-report paths against diff paths.

Coverage tools write paths relative to wherever they ran (a monorepo package,
an absolute workspace path, a Windows runner), while git reports paths
relative to the repository root. Neither side can be trusted to share a root.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from covlens_core.models import FileCoverage


def normalize_path(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


def paths_match(coverage_path: str, diff_path: str) -> bool:
    """Return True if both paths denote the same file.

    Rules, tried in order:
    - equal after normalisation
    - the diff path ends with "/" + coverage path ("pkg/src/foo.ts" vs "src/foo.ts")
    - the coverage path ends with "/" + diff path ("repo/src/foo.ts" vs "src/foo.ts")
    - last resort: the coverage path contains the diff path anywhere
    """
    diff = normalize_path(diff_path)
    cov = normalize_path(coverage_path)
    if diff == cov:
        return True
    if diff.endswith("/" + cov):
        return True
    if cov.endswith("/" + diff):
        return True
    # Loose containment, kept for reports whose paths carry extra prefixes
    # or suffixes the rules above don't anticipate. May over-match.
    if diff in cov:
        return True
    return False


def find_file_coverage(coverage: list[FileCoverage], diff_path: str) -> FileCoverage | None:
    """Return the first record in report order whose path matches diff_path."""
    for record in coverage:
        if paths_match(record.file, diff_path):
            return record
    return None
