import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from covlens_core.models import METRIC_KINDS
from covlens_core.utils.code import COVERAGE_EXTENSIONS

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90

DEFAULT_CONFIG: dict = {
    "coverage_info_path": "coverage/lcov.info",
    "total_coverage_files": 1,  # shard count when coverage_info_path is a sharded S3 directory
    "annotation_type": ["all"],  # any of lines, functions, branches, all
    "annotation_coverage": "detailed",  # detailed | summarize
    "threshold": DEFAULT_THRESHOLD,
    "include": [],  # path patterns, e.g. ".ts", "**/src/**"
    "exclude": [],  # path patterns, e.g. "generated/", "*.d.ts"
    "coverage_extensions": sorted(COVERAGE_EXTENSIONS),
    "base_ref": "HEAD^1",
    "check_name": "Test Coverage Annotate",
    "post_comment": True,
    "debug": False,
    "cache_dir": "coverage",
}

_LIST_KEYS = ("annotation_type", "include", "exclude", "coverage_extensions")


def _split(value) -> list[str]:
    """Accept either a YAML list or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return [str(p).strip() for p in value if str(p).strip()]


def parse_annotation_types(value) -> list[str]:
    types = []
    for t in _split(value):
        if t == "all" or t in METRIC_KINDS:
            types.append(t)
        else:
            logger.warning("Ignoring unknown annotation type %r.", t)
    return types


def clamp_threshold(value) -> int:
    try:
        threshold = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid threshold %r; using %d.", value, DEFAULT_THRESHOLD)
        threshold = DEFAULT_THRESHOLD
    return min(100, max(0, threshold))


def load_config(config_path: str = ".covlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .covlens.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, **{k: list(DEFAULT_CONFIG[k]) for k in _LIST_KEYS}}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["annotation_type"] = parse_annotation_types(config["annotation_type"])
    config["include"] = _split(config["include"])
    config["exclude"] = _split(config["exclude"])
    config["coverage_extensions"] = _split(config["coverage_extensions"])
    config["threshold"] = clamp_threshold(config["threshold"])

    # Ambient values from the CI environment
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["workspace"] = os.environ.get("GITHUB_WORKSPACE", "")

    return config
