"""Exceptions raised by covlens_core.

Only input that makes the whole run meaningless raises. Per-hunk and per-line
anomalies are logged and skipped where they occur.
"""

from __future__ import annotations


class CovlensError(Exception):
    """Base class for every error covlens raises on purpose."""


class FatalInputError(CovlensError):
    """The run cannot produce a result from its inputs."""


class ParseError(FatalInputError):
    """The coverage report produced zero complete records."""


class FetchError(FatalInputError):
    """A remote coverage report could not be downloaded or its URL is malformed."""


class MergeError(FatalInputError):
    """Sharded coverage reports could not be merged into one report."""


class DiffError(FatalInputError):
    """The git diff could not be computed (unreadable repository state)."""
