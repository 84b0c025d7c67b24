"""CLI entry point for covlens.

Commands:
  check  — correlate the diff with a coverage report and publish the result
  files  — show which changed files enter the coverage check and why
  init   — write .covlens.yml and an optional GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from covlens_cli.commands.check import check_cmd
from covlens_cli.commands.files import files_cmd
from covlens_cli.commands.init import init_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("covlens"),
    prog_name="covlens",
)
@click.option(
    "--config",
    "config_path",
    default=".covlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="COVLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Annotate pull requests with new lines that lack test coverage."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(check_cmd)
main.add_command(files_cmd)
main.add_command(init_cmd)
