from __future__ import annotations

import re
from typing import Callable, Iterable

from covlens_core.models import FileDiff

COVERAGE_EXTENSIONS = {
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
}

# Paths that are not production source even when the extension qualifies.
EXCLUDED_PATTERNS = [
    re.compile(r"__tests__"),
    re.compile(r"\.test\.(ts|tsx|js|jsx|mjs|cjs)$", re.IGNORECASE),
    re.compile(r"\.spec\.(ts|tsx|js|jsx|mjs|cjs)$", re.IGNORECASE),
    re.compile(r"\.config\.(ts|tsx|js|mjs|cjs)$", re.IGNORECASE),
    re.compile(r"node_modules"),
    re.compile(r"/dist/"),
    re.compile(r"/coverage/"),
    re.compile(r"\.min\.(js|mjs|cjs)$", re.IGNORECASE),
    re.compile(r"\.d\.ts$", re.IGNORECASE),
    re.compile(r"\.(md|json|yml|yaml|html|css|scss|lock)$", re.IGNORECASE),
]

NOT_VALID_FOR_COVERAGE = "not_valid_for_coverage"
DID_NOT_MATCH_INCLUDE = "did_not_match_include"
MATCHED_EXCLUDE = "matched_exclude"

REASON_LABELS = {
    NOT_VALID_FOR_COVERAGE: "Not valid for coverage (e.g. test file, config, wrong extension)",
    DID_NOT_MATCH_INCLUDE: "Did not match include pattern",
    MATCHED_EXCLUDE: "Matched exclude pattern",
}


def _extension(path: str) -> str:
    return path[path.rfind(".") :] if "." in path else ""


def is_file_valid_for_coverage(file_name: str, extensions: Iterable[str] | None = None) -> bool:
    normalized = file_name.replace("\\", "/")
    allowed = COVERAGE_EXTENSIONS if extensions is None else {e.lower() for e in extensions}
    if _extension(normalized).lower() not in allowed:
        return False
    return not any(p.search(normalized) for p in EXCLUDED_PATTERNS)


def compile_patterns(patterns: list[str], match_when_empty: bool) -> Callable[[str], bool]:
    """Build a case-insensitive path predicate from include/exclude patterns.

    Supports:
    - "**/src/**": path contains the middle segment
    - "**/generated": path contains or ends with the segment
    - "*.ts": path ends with the suffix (or the extension equals it)
    - ".ts": extension match
    - "generated/", "src": plain substring or suffix
    """
    parts = [p.strip().lower() for p in patterns if p and p.strip()]
    if not parts:
        return lambda path: match_when_empty

    def _matches(path: str) -> bool:
        normalized = path.replace("\\", "/").lower()
        ext = _extension(normalized)
        for p in parts:
            if p.startswith("**/") and p.endswith("/**"):
                segment = p[3:-3]
                if not segment or segment in normalized:
                    return True
            elif p.startswith("**/"):
                segment = p[3:]
                if not segment or segment in normalized:
                    return True
            elif p.startswith("*"):
                if normalized.endswith(p[1:]) or ext == p[1:]:
                    return True
            elif p.startswith("."):
                if ext == p:
                    return True
            elif p in normalized:
                return True
        return False

    return _matches


def filter_file_diffs_with_reasons(
    file_diffs: list[FileDiff],
    include: list[str] | None = None,
    exclude: list[str] | None = None,
    extensions: Iterable[str] | None = None,
) -> tuple[list[FileDiff], list[tuple[str, str]]]:
    """Split diff files into those entering correlation and (file, reason) for the rest."""
    include_fn = compile_patterns(include or [], match_when_empty=True)
    exclude_fn = compile_patterns(exclude or [], match_when_empty=False)
    included: list[FileDiff] = []
    excluded: list[tuple[str, str]] = []
    for file_diff in file_diffs:
        name = file_diff.file_name
        if not is_file_valid_for_coverage(name, extensions):
            excluded.append((name, NOT_VALID_FOR_COVERAGE))
        elif not include_fn(name):
            excluded.append((name, DID_NOT_MATCH_INCLUDE))
        elif exclude_fn(name):
            excluded.append((name, MATCHED_EXCLUDE))
        else:
            included.append(file_diff)
    return included, excluded
