"""init command — write .covlens.yml and a GitHub Actions workflow."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)

_WORKFLOW_TEMPLATE = """\
name: Test Coverage Annotate

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  coverage:
    runs-on: ubuntu-latest
    permissions:
      checks: write
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 2

      - name: Run tests with coverage
        run: {test_command}

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install covlens
        run: pip install "covlens=={version}"

      - name: Annotate uncovered lines
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: |
          covlens check \\
            --repo ${{{{ github.repository }}}} \\
            --pr ${{{{ github.event.pull_request.number }}}}
"""


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing workflow file.")
def init_cmd(force: bool):
    """Set up covlens for a repository.

    Writes .covlens.yml (keeping any keys already there) and optionally a
    GitHub Actions workflow that runs `covlens check` on every pull request.
    """
    console.print("\n[bold cyan]covlens init[/bold cyan] — coverage gate setup\n")

    coverage_path = click.prompt("Coverage report path or URL", default="coverage/lcov.info")
    annotation_type = click.prompt(
        "Metrics to annotate",
        type=click.Choice(["all", "lines", "functions", "branches"]),
        default="all",
    )
    mode = click.prompt(
        "Annotation mode",
        type=click.Choice(["detailed", "summarize"]),
        default="detailed",
    )
    threshold = click.prompt("New lines coverage threshold (%)", type=click.IntRange(0, 100), default=90)

    _write_config(
        {
            "coverage_info_path": coverage_path,
            "annotation_type": [annotation_type],
            "annotation_coverage": mode,
            "threshold": threshold,
        }
    )
    console.print("[green]Created .covlens.yml[/green]")

    if click.confirm("\nGenerate .github/workflows/covlens.yml for GitHub Actions?", default=True):
        test_command = click.prompt("Command that runs your tests with LCOV output", default="npm test -- --coverage")
        if _write_workflow(test_command, force):
            console.print("[green]Created .github/workflows/covlens.yml[/green]")
        else:
            console.print("[yellow].github/workflows/covlens.yml already exists; use --force to overwrite.[/yellow]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Try it locally with: [bold]covlens check --shadow[/bold]")


def _write_config(config: dict) -> None:
    """Write or update .covlens.yml, preserving any existing keys."""
    path = Path(".covlens.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    try:
        from importlib.metadata import version

        return version("covlens")
    except Exception:
        logger.debug("covlens is not installed; pinning the workflow to 0.1.0.")
        return "0.1.0"


def _write_workflow(test_command: str, force: bool) -> bool:
    workflow_path = Path(".github/workflows/covlens.yml")
    if workflow_path.exists() and not force:
        return False
    workflow_path.parent.mkdir(parents=True, exist_ok=True)
    workflow_path.write_text(_WORKFLOW_TEMPLATE.format(test_command=test_command, version=_get_version()))
    return True
