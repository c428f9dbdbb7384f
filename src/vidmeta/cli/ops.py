"""CLI commands for inspecting operations and dates without touching files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import click

from vidmeta.cli.exit_codes import ExitCode
from vidmeta.cli.output import error_exit
from vidmeta.dates import DateFormat, format_components, parse_components
from vidmeta.exceptions import ConfigError, DateParseError
from vidmeta.ops import FilenameOps, MetaOps, Preset, load_preset
from vidmeta.ops.parser import (
    describe_filename_ops,
    describe_meta_ops,
    parse_filename_ops,
    parse_meta_ops,
)


@dataclass(frozen=True)
class ResolvedOps:
    """Operations from an ops file followed by those given on the command line."""

    meta: MetaOps
    filename: FilenameOps
    preset: Preset | None = None


def resolve_ops(
    meta_ops: tuple[str, ...],
    filename_ops: tuple[str, ...],
    ops_file: Path | None,
) -> ResolvedOps:
    """Parse CLI operations and merge them after the ops file's.

    Raises:
        ConfigError: If any operation or the ops file is malformed.
    """
    preset = load_preset(ops_file) if ops_file is not None else None
    meta = parse_meta_ops(meta_ops)
    filename = parse_filename_ops(filename_ops)
    if preset is not None:
        meta = preset.meta_ops.merge(meta)
        filename = preset.filename_ops.merge(filename)
    return ResolvedOps(meta=meta, filename=filename, preset=preset)


def ops_options(f):
    """Shared ``-m``/``-f``/``--ops-file`` options."""
    f = click.option(
        "--ops-file",
        type=click.Path(exists=False, dir_okay=False, path_type=Path),
        default=None,
        help="YAML preset with meta_ops, filename_ops and naming choices.",
    )(f)
    f = click.option(
        "--filename-op",
        "-f",
        "filename_ops",
        multiple=True,
        help="Filename operation, e.g. 'replace:_: ' or 'date-tag:prefix:ymd'.",
    )(f)
    f = click.option(
        "--meta-op",
        "-m",
        "meta_ops",
        multiple=True,
        help="Metadata operation, e.g. 'title:set:New' or 'title:append: (HD)'.",
    )(f)
    return f


@click.command("check-ops")
@ops_options
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
def check_ops_command(
    meta_ops: tuple[str, ...],
    filename_ops: tuple[str, ...],
    ops_file: Path | None,
    json_output: bool,
) -> None:
    """Parse operations and print what they would do.

    Exits 0 when every operation is valid, 1 otherwise.

    Examples:

        vidmeta check-ops -m 'title:replace:_: ' -f 'date-tag:prefix:ymd'

        vidmeta check-ops --ops-file preset.yaml
    """
    try:
        resolved = resolve_ops(meta_ops, filename_ops, ops_file)
    except ConfigError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR, json_output)

    meta_lines = describe_meta_ops(resolved.meta)
    filename_lines = describe_filename_ops(resolved.filename)

    if json_output:
        click.echo(
            json.dumps(
                {"meta_ops": meta_lines, "filename_ops": filename_lines}, indent=2
            )
        )
        return

    click.echo("Metadata operations:")
    for line in meta_lines or ["(none)"]:
        click.echo(f"  {line}")
    click.echo("Filename operations:")
    for line in filename_lines or ["(none)"]:
        click.echo(f"  {line}")


@click.command("parse-date")
@click.argument("value")
@click.option(
    "--format",
    "fmt",
    default="Ymd",
    show_default=True,
    help="Output format: Ymd, ymd, Ydm, ydm, dmY, dmy, mdY, mdy, md or dm.",
)
def parse_date_command(value: str, fmt: str) -> None:
    """Parse a loose date such as 20240107 and print it formatted.

    Exits 1 if the format is unknown or the date cannot be resolved.
    """
    try:
        date_format = DateFormat.from_code(fmt)
    except ValueError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)
    try:
        year, month, day = parse_components(value, date_format)
    except DateParseError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR)
    click.echo(format_components(year, month, day, date_format))
