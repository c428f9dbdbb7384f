"""Error, warning and summary output shared by CLI commands."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, NoReturn

import click

from vidmeta.cli.exit_codes import ExitCode

if TYPE_CHECKING:
    from vidmeta.orchestrator import BatchSummary


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Report a fatal error on stderr and exit.

    Args:
        message: What went wrong.
        code: Exit status; plain ints are reported as UNKNOWN_ERROR.
        json_output: Write ``{"status": "failed", "error": {...}}`` instead
            of an ``Error:`` line.
    """
    exit_value = int(code)
    code_name = code.name if isinstance(code, ExitCode) else "UNKNOWN_ERROR"

    if json_output:
        payload = {
            "status": "failed",
            "error": {"code": code_name, "message": message},
        }
        click.echo(json.dumps(payload), err=True)
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(exit_value)


def warning_output(message: str, json_output: bool = False) -> None:
    """Print a warning to stderr (suppressed in JSON mode)."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)


def print_summary(summary: BatchSummary) -> None:
    """Print the closing lines of a text-mode batch run."""
    click.echo("")
    line = (
        f"Processed {len(summary.results)} file(s): "
        f"{summary.ok_count} ok, {summary.failed_count} failed"
    )
    if summary.duration_seconds > 0:
        line += f" in {summary.duration_seconds:.1f}s"
    click.echo(line)

    if summary.pair_failures:
        click.echo(f"{len(summary.pair_failures)} batch pair(s) could not be matched")
    if summary.interrupted:
        click.echo("Batch interrupted before all files were processed.")
