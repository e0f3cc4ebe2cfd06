"""CLI entrypoint for formatguard."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer

from formatguard import __version__
from formatguard.config import AppConfig, default_config_template, load_app_config
from formatguard.github import CommentPermissionError, GhCliReviewClient, GitHubError
from formatguard.output import render_human, render_json
from formatguard.reconcile import ReconcileReport
from formatguard.review import FileResult, ReviewResult, check_paths, run_review

app = typer.Typer(
    name="formatguard",
    no_args_is_help=True,
    help="Check files against a formatter and keep pull request suggestions in sync.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Log progress (-vv for debug)."),
    ] = 0,
) -> None:
    """Root command callback."""
    _ = version
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command("check")
def check_command(
    paths: Annotated[list[Path], typer.Argument(help="Files to check.")],
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Run the formatter on local files and show the hunks it would change."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = _resolve_format(format, app_config)

    root = repo.resolve()
    relative = [_relative_to(root, path) for path in paths]
    files = check_paths(relative, root=root, config=app_config)
    _emit(files, None, output_format)
    _exit_for_verdict(files, app_config)


@app.command("review")
def review_command(
    repo_slug: Annotated[
        str,
        typer.Option("--repo", envvar="GITHUB_REPOSITORY", help="GitHub repository owner/name."),
    ],
    pr: Annotated[int, typer.Option("--pr", envvar="FORMATGUARD_PR", help="Pull request number.")],
    head_sha: Annotated[
        str,
        typer.Option("--head-sha", envvar="FORMATGUARD_HEAD_SHA", help="Commit to comment on."),
    ],
    root: Annotated[
        Path, typer.Option("--root", help="Checkout of the pull request head.")
    ] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Check the pull request's changed files and sync review suggestions."""
    app_config = _load_config_or_raise(root, config_file)
    output_format = _resolve_format(format, app_config)
    if "/" not in repo_slug:
        raise typer.BadParameter("repository must be owner/name", param_hint="--repo")

    client = GhCliReviewClient(repo_slug, pr, max_retries=app_config.github.max_retries)
    try:
        result: ReviewResult = run_review(
            client, app_config, root=root.resolve(), commit_id=head_sha
        )
    except CommentPermissionError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except GitHubError as exc:
        typer.echo(f"error: unable to read pull request #{pr}: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    _emit(result.files, result.report, output_format)
    _exit_for_verdict(result.files, app_config)


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show the resolved configuration and where it came from."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = _resolve_format(format, app_config)
    if output_format == "json":
        typer.echo(json.dumps(app_config.to_dict(), sort_keys=True))
        return

    typer.echo(f"Configuration from {app_config.source or 'built-in defaults'}:")
    for key, value in _flatten(app_config.to_dict()):
        if key != "source":
            typer.echo(f"  {key} = {json.dumps(value, ensure_ascii=False)}")


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Where to write the config.")] = Path(
        ".formatguard.toml"
    ),
    force: Annotated[bool, typer.Option("--force", help="Replace an existing file.")] = False,
) -> None:
    """Write a commented starter .formatguard.toml."""
    target = out.resolve()
    if target.exists() and not force:
        raise typer.BadParameter(f"{target} already exists (pass --force to replace it)")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {target}")


def main() -> None:
    """Console script entrypoint."""
    app()


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _resolve_format(value: str | None, app_config: AppConfig) -> str:
    output_format = (value or app_config.format).lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    return output_format


def _relative_to(root: Path, path: Path) -> str:
    resolved = path if path.is_absolute() else (Path.cwd() / path)
    try:
        return resolved.resolve().relative_to(root).as_posix()
    except ValueError as exc:
        raise typer.BadParameter(f"{path} is outside {root}", param_hint="PATHS") from exc


def _emit(
    files: list[FileResult], report: ReconcileReport | None, output_format: str
) -> None:
    if output_format == "json":
        typer.echo(render_json(files, report))
    else:
        typer.echo(render_human(files, report))


def _exit_for_verdict(files: list[FileResult], app_config: AppConfig) -> None:
    if app_config.fail_on_violations and any(item.has_violations for item in files):
        raise typer.Exit(code=1)


def _flatten(mapping: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    items: list[tuple[str, Any]] = []
    for key, value in mapping.items():
        if isinstance(value, dict):
            items.extend(_flatten(value, f"{prefix}{key}."))
        else:
            items.append((f"{prefix}{key}", value))
    return items
