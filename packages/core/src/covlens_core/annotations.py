"""Render uncovered items as GitHub check-run annotations."""

from __future__ import annotations

import logging

from covlens_core.models import UncoveredItem

logger = logging.getLogger(__name__)

DETAILED = "detailed"
SUMMARIZE = "summarize"

SUMMARY_TITLE = "** Summary of Uncovered Code **"

_SINGULAR = {"functions": "function", "branches": "branch", "lines": "line"}


def _relative_path(path: str, workspace: str) -> str:
    prefix = workspace.rstrip("/") + "/" if workspace else ""
    if prefix and path.startswith(prefix):
        return path[len(prefix) :]
    return path


def summarize_items(uncovered: dict[str, tuple[UncoveredItem, ...]]) -> dict[str, dict[str, list[int]]]:
    """Group each file's items into {annotation_type: [line numbers]}, first-seen order."""
    summary: dict[str, dict[str, list[int]]] = {}
    for path, items in uncovered.items():
        by_type: dict[str, list[int]] = {}
        for item in items:
            by_type.setdefault(item.annotation_type, []).append(item.line_number)
        summary[path] = by_type
    return summary


def create_annotations(
    uncovered: dict[str, tuple[UncoveredItem, ...]],
    mode: str = DETAILED,
    workspace: str = "",
) -> list[dict]:
    """Build annotation dicts in the shape the GitHub Checks API accepts.

    ``detailed`` emits one single-line annotation per item. ``summarize`` emits
    one annotation per file, pinned to line 1, listing every affected line per
    metric. ``workspace`` is stripped from the front of each path.
    """
    annotations: list[dict] = []

    if mode == SUMMARIZE:
        for path, by_type in summarize_items(uncovered).items():
            message = ""
            for annotation_type, line_numbers in by_type.items():
                places = ", ".join(str(n) for n in line_numbers)
                message += (
                    f"The {annotation_type} at place(s) {places} were not covered by any of the Tests "
                    f"({len(line_numbers)} total).\n"
                )
            annotations.append(
                {
                    "path": _relative_path(path, workspace),
                    "start_line": 1,
                    "end_line": 1,
                    "annotation_level": "failure",
                    "title": SUMMARY_TITLE,
                    "message": message,
                }
            )
    elif mode == DETAILED:
        for path, items in uncovered.items():
            for item in items:
                noun = _SINGULAR.get(item.annotation_type, item.annotation_type)
                annotations.append(
                    {
                        "path": _relative_path(path, workspace),
                        "start_line": item.line_number,
                        "end_line": item.line_number,
                        "annotation_level": "failure",
                        "message": f"{noun} not covered!",
                    }
                )
    else:
        logger.warning("Unknown annotation mode %r; no annotations created.", mode)

    return annotations
