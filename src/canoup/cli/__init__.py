"""
canoup CLI - Main application entry point.

Running ``canoup`` without a subcommand performs an update: sync the Cano
mirror, then build and install when needed.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from canoup import __version__
from canoup.cli import status as status_cmd
from canoup.cli.errors import ExitCode, print_error
from canoup.cli.update import run_update
from canoup.core.config import load_layered_env
from canoup.core.errors import CanoupError

app = typer.Typer(
    name="canoup",
    help="Install and update the Cano editor from source",
    no_args_is_help=False,
    invoke_without_command=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"canoup version {__version__}")
        raise typer.Exit(ExitCode.SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    mirror_dir: Optional[Path] = typer.Option(
        None,
        "--mirror-dir",
        "-d",
        help="Local source tree (default: ~/cano)",
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Upstream branch to track (default: main)",
    ),
    url: Optional[str] = typer.Option(
        None,
        "--url",
        help="Repository URL used for the first clone",
    ),
    skip_install: bool = typer.Option(
        False,
        "--skip-install",
        help="Build but do not install the binary",
    ),
    tolerate_fetch_errors: bool = typer.Option(
        False,
        "--tolerate-fetch-errors",
        help="Treat a failed fetch as 'nothing new' instead of failing",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show canoup version and exit",
    ),
) -> None:
    """
    canoup - install and update Cano from source.

    Keeps a clone of the Cano repository in ~/cano, pulls upstream changes
    (fast-forward or merge), and rebuilds and installs the editor whenever
    the source changed or no binary is installed yet.

    Examples:
        canoup                       # Update (or install) cano
        canoup --skip-install        # Sync and build only
        canoup status                # Show mirror state
    """
    # Precedence: OS env > ~/.config/canoup/.env
    try:
        load_layered_env()
    except CanoupError as e:
        print_error(str(e), reason=e.detail or None)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    overrides = {
        "mirror_dir": mirror_dir,
        "branch": branch,
        "url": url,
        "tolerate_fetch_errors": tolerate_fetch_errors,
    }
    ctx.obj = {"debug": debug, "overrides": overrides}

    if ctx.invoked_subcommand is not None:
        return

    run_update(**overrides, skip_install=skip_install, debug=debug)


app.command(name="status")(status_cmd.status)


def cli_main() -> None:
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(ExitCode.SIGINT)


__all__ = ["app", "cli_main"]
