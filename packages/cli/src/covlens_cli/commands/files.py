"""files command — show which changed files enter the coverage check."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from covlens_core.errors import CovlensError
from covlens_core.git.diff import get_diff_with_line_numbers
from covlens_core.utils.code import REASON_LABELS, filter_file_diffs_with_reasons

console = Console()


@click.command("files")
@click.option("--base", "base_ref", default=None, help="Git ref to diff against.")
@click.pass_context
def files_cmd(ctx, base_ref: str | None):
    """List changed files with added lines and whether the check considers them.

    Uses the include/exclude patterns from the configuration file. Useful
    for tuning patterns before wiring covlens into CI.
    """
    from covlens_core.config import load_config

    config_path = ctx.obj.get("config_path", ".covlens.yml") if ctx.obj else ".covlens.yml"
    config = load_config(config_path, cli_overrides={"base_ref": base_ref})

    try:
        file_diffs = get_diff_with_line_numbers(config["base_ref"])
    except CovlensError as e:
        raise click.ClickException(str(e))

    if not file_diffs:
        console.print(f"[yellow]No added lines found against {config['base_ref']}.[/yellow]")
        return

    considered, excluded = filter_file_diffs_with_reasons(
        file_diffs, config["include"], config["exclude"], config["coverage_extensions"]
    )
    reasons = dict(excluded)

    table = Table(title=f"Changed files vs {config['base_ref']}", show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("New lines", justify="right")
    table.add_column("Status")

    considered_names = {f.file_name for f in considered}
    for f in file_diffs:
        new_lines = sum(r.span_count for r in f.ranges)
        if f.file_name in considered_names:
            status = "[green]considered[/green]"
        else:
            status = f"[dim]{REASON_LABELS.get(reasons.get(f.file_name, ''), 'ignored')}[/dim]"
        table.add_row(f.file_name, str(new_lines), status)

    console.print(table)
    console.print(f"  {len(considered)} considered, {len(excluded)} ignored.")
