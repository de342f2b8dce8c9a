"""
canoup CLI - Update command.

Sync the Cano mirror with upstream, then build and install it when the
source changed or nothing is installed yet.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from canoup.cli.errors import ExitCode, print_error
from canoup.core.config import CanoupConfig, RepositoryConfig, get_user_config_path, load_config
from canoup.core.errors import CanoupError
from canoup.core.pipeline import CommandResult, PipelineError
from canoup.core.sync import MergeClassification, SyncError, SyncResult
from canoup.core.updater import Updater

console = Console()


def apply_cli_overrides(
    config: CanoupConfig,
    *,
    mirror_dir: Path | None = None,
    branch: str | None = None,
    url: str | None = None,
    tolerate_fetch_errors: bool = False,
) -> CanoupConfig:
    """Return ``config`` with command-line flags applied on top."""
    overrides: dict[str, Any] = {}
    if mirror_dir is not None:
        overrides["mirror_dir"] = mirror_dir
    if branch:
        overrides["branch"] = branch
    if url:
        overrides["url"] = url
    if tolerate_fetch_errors:
        overrides["fail_on_fetch_error"] = False

    if not overrides:
        return config

    repository = RepositoryConfig(**{**config.repository.model_dump(), **overrides})
    return config.model_copy(update={"repository": repository})


def load_cli_config(**overrides: Any) -> CanoupConfig:
    """
    Load config and apply CLI overrides, exiting with a message on failure.

    Raises:
        typer.Exit: On invalid configuration or an unusable environment.
    """
    try:
        return apply_cli_overrides(load_config(), **overrides)
    except ValidationError as e:
        print_error(
            "Invalid configuration",
            reason=str(e),
            solution=f"Fix {get_user_config_path()} or the CANOUP_* environment variables",
        )
        raise typer.Exit(ExitCode.USER_ERROR)
    except CanoupError as e:
        print_error(str(e), reason=e.detail or None)
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _echo_output(result: CommandResult | None) -> None:
    if result is not None and result.stdout:
        console.print(result.stdout, markup=False, highlight=False, end="")


def _report_sync(result: SyncResult) -> None:
    if result.cloned:
        console.print(f"[green]✓[/green] Cloned fresh source tree at {result.mirror_dir}")
        return

    if result.fetch is not None and result.fetch.failed:
        console.print("[yellow]⚠[/yellow]  Fetch failed; continuing with the current source tree")

    if result.classification is None:
        return

    if result.classification.is_fast_forward and result.current_tip:
        console.print(f"[green]✓[/green] Fast-forwarded to {result.current_tip[:8]}")
    elif result.has_conflicts:
        conflicts = result.merge.conflicts  # type: ignore[union-attr]
        console.print(
            f"[yellow]⚠[/yellow]  Merge left {len(conflicts)} conflicted file(s); "
            f"resolve them in {result.mirror_dir}:"
        )
        for path in conflicts:
            console.print(f"    {path}", highlight=False)
    elif result.merge is not None and result.merge.commit:
        console.print(f"[green]✓[/green] Merged upstream changes ({result.merge.commit[:8]})")
    elif result.classification is MergeClassification.UP_TO_DATE:
        console.print("[blue]Local branch already contains the fetched commit[/blue]")
    else:
        console.print("[blue]Nothing to do...[/blue]")


def _announce(step: str) -> None:
    if step == "build":
        console.print("[bold]Building cano...[/bold]")
    elif step == "install":
        console.print("[bold]Installing cano...[/bold]")


def run_update(
    *,
    mirror_dir: Path | None = None,
    branch: str | None = None,
    url: str | None = None,
    tolerate_fetch_errors: bool = False,
    skip_install: bool = False,
    debug: bool = False,
) -> None:
    """
    Run one update: sync, then build/install when needed.

    Raises:
        typer.Exit: With a non-zero code on any fatal error.
    """
    config = load_cli_config(
        mirror_dir=mirror_dir,
        branch=branch,
        url=url,
        tolerate_fetch_errors=tolerate_fetch_errors,
    )

    try:
        updater = Updater.from_config(config, install=not skip_install)
    except CanoupError as e:
        print_error(str(e), reason=e.detail or None)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(
        f"Cano source tree present at: {updater.sync_service.mirror_dir}",
        highlight=False,
    )
    if debug:
        console.print(f"[dim]Branch: {config.repository.branch}[/dim]")
        console.print(f"[dim]Install marker: {config.install.marker}[/dim]")

    try:
        report = updater.run(on_step=_announce, on_sync=_report_sync)
    except SyncError as e:
        print_error(str(e), reason=e.detail or None)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except PipelineError as e:
        if e.output:
            console.print(e.output, markup=False, highlight=False, end="")
        print_error(str(e), reason=e.detail or None)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not report.built:
        console.print("[green]✓[/green] Latest version of cano installed.")
        return

    _echo_output(report.build)
    console.print("[green]✓[/green] Build successful.")

    if report.install is not None:
        _echo_output(report.install)
        console.print("[green]✓[/green] Install successful.")
