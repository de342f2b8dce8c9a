"""
Standardized error handling and exit codes for the canoup CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes.
"""

from enum import IntEnum

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for canoup."""

    SUCCESS = 0
    """Operation completed successfully (including 'already up to date')."""

    GENERAL_ERROR = 1
    """Any fatal error: environment, repository, build or install."""

    USER_ERROR = 2
    """Invalid configuration (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation (usually the underlying tool's message)
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Failed to find remote: origin",
        ...     reason="Remote named 'origin' didn't exist",
        ...     solution="git -C ~/cano remote add origin <url>",
        ... )
    """
    console.print(f"[red]Error:[/red] {escape(problem)}", highlight=False)

    if reason:
        console.print(f"[dim]{escape(reason)}[/dim]", highlight=False)

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}", highlight=False)

