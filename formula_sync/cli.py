#!/usr/bin/env python3
"""formula_sync CLI entry point."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

import typer

from .args import SyncArgs
from .console import configure_console, log_error
from .constants import EXIT_CODE_FAILURE, EXIT_CODE_INTERRUPT, PACKAGE_NAME, VERBOSE_ENV_VAR
from .errors import CLIError
from .sync import handle_sync
from .version import cli_version

app = typer.Typer(
    help="Synchronize a Homebrew formula with the latest GitHub release.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PACKAGE_NAME} {cli_version()}")
        raise typer.Exit()


@app.command()
def sync(
    repository: Optional[str] = typer.Option(
        None, "--repository", "-r", help="the project repository (e.g. mona/hello)"
    ),
    tap: Optional[str] = typer.Option(
        None, "--tap", "-t", help="the Homebrew tap repository (e.g. mona/homebrew-formulae)"
    ),
    formula: Optional[str] = typer.Option(
        None, "--formula", "-f", help="the path to the formula in the tap repository (e.g. Formula/hello.rb)"
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="the name of the formula in Homebrew (defaults to the repository name)"
    ),
    message: Optional[str] = typer.Option(
        None, "--message", "-m", help="the message of the commit updating the formula"
    ),
    rubocop_config: Optional[str] = typer.Option(
        None, "--rubocop-config", help="rubocop config used to normalize the formula"
    ),
    skip_normalize: bool = typer.Option(
        False, "--skip-normalize", help="commit the rewritten formula without running rubocop"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="print the updated formula instead of committing it"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", envvar=VERBOSE_ENV_VAR, help="output more information"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="show the formula_sync version and exit",
    ),
) -> None:
    configure_console(verbose=verbose)
    args = SyncArgs(
        repository=repository,
        tap=tap,
        formula=formula,
        name=name,
        message=message,
        rubocop_config=rubocop_config,
        verbose=verbose,
        dry_run=dry_run,
        skip_normalize=skip_normalize,
    )
    try:
        rc = handle_sync(args)
    except CLIError as exc:
        log_error(f"error: {exc}")
        raise typer.Exit(code=EXIT_CODE_FAILURE) from exc
    raise typer.Exit(code=rc)


def main(argv: Optional[Sequence[str]] = None) -> int:
    command = typer.main.get_command(app)
    try:
        result = command.main(
            args=list(argv) if argv is not None else None,
            prog_name=PACKAGE_NAME,
            standalone_mode=False,
        )
    except (KeyboardInterrupt, typer.Abort):
        log_error("interrupted")
        return EXIT_CODE_INTERRUPT
    except typer.TyperException as exc:
        # Usage errors (unknown option, bad value) carry their own rendering.
        show = getattr(exc, "show", None)
        if callable(show):
            show()
        else:
            log_error(f"error: {exc}")
        return EXIT_CODE_FAILURE
    except SystemExit as exc:
        return int(exc.code or 0)
    return int(result or 0)


if __name__ == "__main__":
    sys.exit(main())
