"""GitHub token resolution.

Resolution order (stops at first success):
  1. INPUT_TOKEN (the ``token`` input when running as a GitHub Action)
  2. GITHUB_TOKEN environment variable
  3. `gh auth token` (GitHub CLI session)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_TOKEN_ENV_VARS = ("INPUT_TOKEN", "GITHUB_TOKEN")


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None. Never raises."""
    for name in _TOKEN_ENV_VARS:
        token = os.environ.get(name, "").strip()
        if token:
            logger.debug("Resolved GitHub token from %s.", name)
            return token

    token = _gh_cli_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token
