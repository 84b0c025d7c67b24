"""check command — gate a pull request on coverage of its new lines."""

from __future__ import annotations

import json

import click

from covlens_core.errors import CovlensError
from covlens_core.git.diff import parse_unified_diff
from covlens_core.runner import analyze_changes, run_check


@click.command("check")
@click.option("--repo", envvar="GITHUB_REPOSITORY", default=None, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number.")
@click.option("--coverage", "coverage_info_path", default=None, help="Coverage report path or URL.")
@click.option("--shards", "total_coverage_files", type=int, default=None, help="Number of sharded reports to merge.")
@click.option(
    "--type",
    "annotation_type",
    default=None,
    help="Comma-separated metric kinds: lines, functions, branches, all.",
)
@click.option(
    "--mode",
    "annotation_coverage",
    type=click.Choice(["detailed", "summarize"]),
    default=None,
    help="Annotation rendering mode.",
)
@click.option("--threshold", type=int, default=None, help="Minimum new-lines coverage percentage (0-100).")
@click.option("--include", default=None, help="Comma-separated include patterns.")
@click.option("--exclude", default=None, help="Comma-separated exclude patterns.")
@click.option("--base", "base_ref", default=None, help="Git ref to diff against.")
@click.option(
    "--diff-file",
    type=click.File("r"),
    default=None,
    help="Read a unified diff (git diff -U0) from this file instead of running git.",
)
@click.option("--debug", is_flag=True, help="Print the per-file and per-line diagnostic report.")
@click.option("--shadow", "-s", is_flag=True, help="Dry-run mode: print annotations without posting to GitHub.")
@click.option("--json", "as_json", is_flag=True, help="Print the analysis result as JSON (implies --shadow).")
@click.pass_context
def check_cmd(
    ctx,
    repo: str | None,
    pr_number: int | None,
    coverage_info_path: str | None,
    total_coverage_files: int | None,
    annotation_type: str | None,
    annotation_coverage: str | None,
    threshold: int | None,
    include: str | None,
    exclude: str | None,
    base_ref: str | None,
    diff_file,
    debug: bool,
    shadow: bool,
    as_json: bool,
):
    """Annotate uncovered new lines and fail below the coverage threshold.

    Computes the diff against --base, correlates it with the coverage report,
    publishes a GitHub check run with annotations plus a PR comment, and
    exits non-zero when new-lines coverage is below the threshold.

    \b
    Required environment variables (unless --shadow):
      GITHUB_TOKEN         GitHub token with checks:write (or use gh CLI)
    """
    from covlens_core.config import load_config
    from covlens_cli.auth import resolve_github_token

    config_path = ctx.obj.get("config_path", ".covlens.yml") if ctx.obj else ".covlens.yml"
    config = load_config(
        config_path,
        cli_overrides={
            "coverage_info_path": coverage_info_path,
            "total_coverage_files": total_coverage_files,
            "annotation_type": annotation_type,
            "annotation_coverage": annotation_coverage,
            "threshold": threshold,
            "include": include,
            "exclude": exclude,
            "base_ref": base_ref,
            "debug": debug or None,
        },
    )
    shadow = shadow or as_json

    if not config["annotation_type"]:
        raise click.UsageError("No valid annotation type. Use lines, functions, branches or all.")

    if not shadow:
        if not repo or pr_number is None:
            raise click.UsageError("--repo and --pr are required unless --shadow is set.")
        token = resolve_github_token()
        if not token:
            raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
        config["github_token"] = token

    file_diffs = parse_unified_diff(diff_file.read()) if diff_file is not None else None

    try:
        if as_json:
            summary = analyze_changes(config, file_diffs)
        else:
            summary = run_check(
                config,
                repo=repo,
                pr_number=pr_number,
                shadow=shadow,
                file_diffs=file_diffs,
            )
    except CovlensError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(summary.result.to_dict(), indent=2))

    if not summary.meets_threshold:
        raise click.ClickException(
            f"New lines coverage {summary.percentage}% is below the required {summary.threshold}%."
        )
