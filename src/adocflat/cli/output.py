"""Error reporting for the adocflat CLI."""

#  Copyright (c) 2025 Tom Villani, Ph.D.

# src/adocflat/cli/output.py
import argparse
import sys
from typing import Any, Iterable, TextIO

from adocflat.exceptions import DependencyError


def check_rich_available() -> bool:
    """Check if Rich library is available.

    Returns
    -------
    bool
        True if Rich is available, False otherwise

    """
    try:
        import rich  # noqa: F401

        return True
    except ImportError:
        return False


def should_use_rich_output(args: argparse.Namespace, raise_on_missing: bool = False, stream: TextIO | None = None) -> bool:
    """Determine if Rich output should be used based on TTY and args.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments
    raise_on_missing : bool, default False
        Raise DependencyError if rich is not installed
    stream : optional, default None
        Stream the report goes to; sys.stderr unless otherwise specified.

    Returns
    -------
    bool
        True if Rich output should be used

    Notes
    -----
    Rich output is used when the --rich flag is set, the target stream is a
    TTY and the Rich library is available.

    """
    if not getattr(args, "rich", False):
        return False

    if not check_rich_available():
        if raise_on_missing:
            raise DependencyError(
                feature_name="rich-output",
                missing_packages=[("rich", "")],
                message="Rich output requires the optional 'rich' dependency. Install with: pip install adocflat[rich]",
            )
        return False

    target = stream or sys.stderr
    isatty = getattr(target, "isatty", None)
    return bool(callable(isatty) and isatty())


def format_error_line(display_name: str, error: dict[str, Any]) -> str:
    """Format one collected error as a single plain-text line."""
    kind = error.get("kind", "error")
    return f"{display_name}: {kind}: {error.get('message', '')}"


def print_errors_plain(failures: Iterable[tuple[str, list[dict[str, Any]]]], stream: TextIO | None = None) -> None:
    """Print collected errors, one per line, to ``stream`` (stderr by default)."""
    target = stream or sys.stderr
    for display_name, errors in failures:
        for error in errors:
            print(format_error_line(display_name, error), file=target)


def print_errors_rich(failures: Iterable[tuple[str, list[dict[str, Any]]]], stream: TextIO | None = None) -> None:
    """Print collected errors as a Rich table."""
    from rich.console import Console
    from rich.table import Table

    console = Console(file=stream or sys.stderr)
    table = Table(title="Assembly errors")
    table.add_column("Input", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Location", style="yellow")
    table.add_column("Message")

    for display_name, errors in failures:
        for error in errors:
            location = f"{error['source']}:{error['line']}" if "source" in error else ""
            table.add_row(display_name, str(error.get("kind", "error")), location, str(error.get("message", "")))

    console.print(table)
