"""Decode added lines from unified diffs into FileDiff records.

The decoder only needs two things per file: the new-side range token of every
hunk header ("12" or "12,3") and the stream of added-line contents in diff
order. Each ``start,count`` range takes the next ``count`` added lines from
that stream, so decoding walks an explicit cursor over it.
"""

from __future__ import annotations

import logging
import re
import subprocess

from covlens_core.errors import DiffError
from covlens_core.models import ChangedRange, FileDiff

logger = logging.getLogger(__name__)

_NEW_RANGE_RE = re.compile(r"\+([^\s@]+)")


def hunk_range_token(header: str) -> str | None:
    """Extract the new-side range token from a ``@@ -a,b +c,d @@`` header."""
    _, _, body = header.partition("@@")
    body, _, _ = body.partition("@@")
    match = _NEW_RANGE_RE.search(body)
    return match.group(1).strip() if match else None


def _take(added_lines: tuple[str, ...], cursor: int, count: int) -> tuple[tuple[str, ...], int]:
    taken = added_lines[cursor : cursor + count]
    # Pad when the stream runs short so content_lines always matches span_count.
    taken = taken + ("",) * (count - len(taken))
    return taken, min(cursor + count, len(added_lines))


def decode_range(
    token: str, added_lines: tuple[str, ...], cursor: int = 0
) -> tuple[ChangedRange | None, int]:
    """Decode one range token, returning the range and the advanced cursor.

    Returns ``(None, cursor)`` for tokens that cannot be decoded; the cursor is
    left where it was. A zero count yields a one-line range that takes no content.
    """
    start_text, sep, count_text = token.partition(",")
    try:
        start = int(start_text)
    except ValueError:
        logger.warning("Invalid hunk start line %r; skipping hunk.", start_text)
        return None, cursor

    if not sep:
        content, cursor = _take(added_lines, cursor, 1)
        return ChangedRange(start_line=start, span_count=1, content_lines=content), cursor

    try:
        count = int(count_text)
    except ValueError:
        logger.warning("Invalid line count %r in hunk %r; skipping hunk.", count_text, token)
        return None, cursor

    if count <= 0:
        # Pure deletion: the line at the deletion point is still evaluated, but no added
        # content belongs to it.
        return ChangedRange(start_line=start, span_count=1, content_lines=()), cursor

    content, cursor = _take(added_lines, cursor, count)
    return ChangedRange(start_line=start, span_count=count, content_lines=content), cursor


def decode_file_diff(file_name: str, range_tokens: list[str], added_lines: list[str]) -> FileDiff:
    stream = tuple(added_lines)
    cursor = 0
    ranges: list[ChangedRange] = []
    for token in range_tokens:
        changed, cursor = decode_range(token, stream, cursor)
        if changed is not None:
            ranges.append(changed)
    return FileDiff(file_name=file_name, ranges=tuple(ranges))


def _added_content(line: str) -> str:
    return line[1:].strip() if line.startswith("+") else line.strip()


def split_file_patch(patch_text: str) -> tuple[list[str], list[str]]:
    """Return (range tokens, added-line contents) for one file's ``-U0`` patch."""
    tokens: list[str] = []
    added: list[str] = []
    in_hunk = False
    for line in patch_text.splitlines():
        if line.startswith("@@"):
            in_hunk = True
            token = hunk_range_token(line)
            if token is not None:
                tokens.append(token)
        elif in_hunk and line.startswith("+"):
            added.append(_added_content(line))
    return tokens, added


def parse_unified_diff(diff_text: str) -> list[FileDiff]:
    """Decode a multi-file unified diff (as printed by ``git diff -U0``).

    Files with no added lines are omitted, matching the git provider.
    """
    files: list[FileDiff] = []
    current: str | None = None
    chunk: list[str] = []
    # File headers only appear between "diff --git" and the first hunk; inside a hunk
    # "+++ x" is an added line whose content starts with "++".
    in_header = True

    def flush() -> None:
        if current is None:
            return
        tokens, added = split_file_patch("\n".join(chunk))
        if not added:
            logger.info("No new lines added in %s; skipping it.", current)
            return
        files.append(decode_file_diff(current, tokens, added))

    for line in diff_text.splitlines():
        if line.startswith("diff --git "):
            flush()
            current, chunk, in_header = None, [], True
            continue
        if line.startswith("@@"):
            in_header = False
        elif in_header and line.startswith("+++ "):
            path = line[4:].strip()
            if path == "/dev/null":
                current = None
            else:
                current = path[2:] if path.startswith("b/") else path
            continue
        elif in_header and line.startswith("--- "):
            continue
        chunk.append(line)
    flush()
    return files


def _git(args: list[str]) -> str:
    result = subprocess.run(["git", *args], capture_output=True, text=True)
    if result.returncode != 0:
        raise DiffError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout


def get_changed_file_names(base_ref: str) -> list[str]:
    return [name for name in _git(["diff", "--name-only", base_ref]).splitlines() if name.strip()]


def get_diff_with_line_numbers(base_ref: str = "HEAD^1") -> list[FileDiff]:
    """Return the added lines of every file changed since ``base_ref``.

    Raises DiffError when git cannot list the changed files. A file whose own
    diff fails or adds nothing is logged and skipped.
    """
    try:
        names = get_changed_file_names(base_ref)
    except FileNotFoundError as e:
        raise DiffError(f"git is not available: {e}") from e

    file_diffs: list[FileDiff] = []
    for name in names:
        try:
            patch = _git(["diff", "--unified=0", base_ref, "--ignore-all-space", "--", name])
        except DiffError as e:
            logger.warning("Could not diff %s; skipping it: %s", name, e)
            continue
        tokens, added = split_file_patch(patch)
        if not added:
            logger.info("No new lines added in %s; skipping it.", name)
            continue
        file_diffs.append(decode_file_diff(name, tokens, added))
    return file_diffs
