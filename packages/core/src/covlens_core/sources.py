"""Resolve a coverage report location into decoded records.

Locations come in four shapes:
  - a local file path
  - inline LCOV text (anything that is not an existing path)
  - an http(s) URL to a single tracefile, cached under ``cache_dir``
  - an S3 "directory" URL ending in ``/coverage/<build>/`` that holds
    ``<build>.1.info`` .. ``<build>.N.info`` shards, merged into one report
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
from pathlib import Path

import httpx

from covlens_core.errors import FetchError, MergeError, ParseError
from covlens_core.lcov import merge_reports, parse_lcov, render_lcov
from covlens_core.models import FileCoverage

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^(http|https)://")
_S3_DIRECTORY_RE = re.compile(r"^https://[\w.-]+\.s3\.amazonaws\.com/([^?#]+/)$")
_BUILD_NUMBER_RE = re.compile(r"/coverage/(\d+)/$")

_FETCH_TIMEOUT = 30.0


def is_url(location: str) -> bool:
    return bool(_URL_RE.match(location))


def is_s3_directory(url: str) -> bool:
    return bool(_S3_DIRECTORY_RE.match(url))


def temp_filename(url: str) -> str:
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()
    return f"coverage_{digest}.info"


def fetch_content(url: str) -> str:
    logger.info("Fetching coverage report from %s", url)
    try:
        response = httpx.get(url, timeout=_FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(f"Error fetching content from URL {url}: {e}") from e
    return response.text


def _save(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def merge_shards(url: str, shard_count: int, cache_dir: Path) -> Path:
    """Download every shard of a sharded report and write the merged tracefile."""
    match = _BUILD_NUMBER_RE.search(url)
    if not match:
        raise FetchError(f"Invalid S3 coverage URL: {url}")
    build = match.group(1)

    shards: list[list[FileCoverage]] = []
    for i in range(1, max(shard_count, 1) + 1):
        content = fetch_content(f"{url}{build}.{i}.info")
        _save(cache_dir / f"{build}.{i}.info", content)
        try:
            shards.append(parse_lcov(content))
        except ParseError as e:
            raise MergeError(f"Could not merge shard {build}.{i}.info: {e}") from e

    merged_path = cache_dir / f"{build}_merged.info"
    try:
        return _save(merged_path, render_lcov(merge_reports(shards)))
    except OSError as e:
        raise MergeError(f"Could not write merged report {merged_path}: {e}") from e


def read_report_text(location: str, shard_count: int = 1, cache_dir: str | Path = "coverage") -> str:
    """Return decodable LCOV text for a report location."""
    cache = Path(cache_dir)
    if is_url(location):
        if is_s3_directory(location):
            return merge_shards(location, shard_count, cache).read_text(encoding="utf-8")
        content = fetch_content(location)
        cached = _save(cache / temp_filename(location), content)
        logger.debug("Cached coverage report at %s", cached)
        return content

    # os.path.isfile tolerates inline report text that is too long to be a path.
    if os.path.isfile(location):
        path = Path(location)
        logger.debug("Reading coverage report from %s", path.resolve())
        return path.read_text(encoding="utf-8", errors="replace")

    # Not a file on disk: treat the value itself as report content.
    logger.debug("%s is not a file; decoding it as inline LCOV text.", location[:80])
    return location


def load_coverage_report(
    location: str, shard_count: int = 1, cache_dir: str | Path = "coverage"
) -> list[FileCoverage]:
    """Fetch (if needed) and decode a coverage report.

    Raises FetchError, MergeError or ParseError.
    """
    return parse_lcov(read_report_text(location, shard_count, cache_dir))
