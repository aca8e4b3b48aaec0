from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from pubflow import __version__
from pubflow.cli.context import CLIOverrides, build_context
from pubflow.cli.prompt import TerminalDecider
from pubflow.core.errors import ErrorCode
from pubflow.core.result import Err, Ok
from pubflow.release.manifest import load_manifest
from pubflow.release.model import VersionRequest
from pubflow.release.orchestrator import ReleaseFailure, ReleaseOrchestrator

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


def exit_release(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def report_failure(failure: ReleaseFailure) -> NoReturn:
    typer.echo(f"error: {failure.error.pretty()}", err=True)
    if failure.rolled_back:
        typer.echo("The version bump was rolled back.", err=True)
    if failure.rollback_error is not None:
        typer.echo(f"error: rollback failed: {failure.rollback_error.pretty()}", err=True)
    raise typer.Exit(code=int(ErrorCode.FAILURE))


@app.command()
def release(
    version: str | None = typer.Argument(
        None,
        help="patch | minor | major | prepatch | preminor | premajor | prerelease | 1.2.3",
        show_default=False,
    ),
    tag: str | None = typer.Option(None, "--tag", help="Publish under a dist-tag."),
    branch: str | None = typer.Option(None, "--branch", help="Name of the release branch."),
    allow_any_branch: bool | None = typer.Option(
        None, "--allow-any-branch/--release-branch-only", help="Allow publishing from any branch."
    ),
    run_scripts: str | None = typer.Option(
        None, "--run-scripts", help='Scripts to run before publishing, e.g. "lint test".'
    ),
    clean: bool | None = typer.Option(None, "--clean/--no-clean", help="Reinstall dependencies from scratch."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Echo every external command."),
    show_version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Publish the package in the current directory."""
    if show_version:
        typer.echo(__version__)
        raise typer.Exit(code=int(ErrorCode.OK))

    ctx = build_context(
        cwd=Path.cwd(),
        overrides=CLIOverrides(
            tag=tag,
            branch=branch,
            allow_any_branch=allow_any_branch,
            clean=clean,
            run_scripts=run_scripts,
        ),
        verbose=verbose,
    )
    if isinstance(ctx, Err):
        exit_release(ctx.error.pretty(), code=ErrorCode.FAILURE)
    c = ctx.value

    request = VersionRequest.parse(version)
    orchestrator = ReleaseOrchestrator(
        options=c.options,
        pkg=c.pkg,
        request=request,
        repo=c.repo,
        npm=c.npm,
        console=c.console,
        read_manifest=lambda: load_manifest(c.pkg.root),
        decider=TerminalDecider(c.console) if request.form == "empty" else None,
    )

    try:
        result = orchestrator.run()
    except KeyboardInterrupt:
        typer.echo("\nAborted. No rollback was attempted; check the repository state.", err=True)
        raise typer.Exit(code=int(ErrorCode.INTERRUPTED))

    match result:
        case Ok(_):
            raise typer.Exit(code=int(ErrorCode.OK))
        case Err(failure):
            report_failure(failure)


def main() -> None:
    app()
