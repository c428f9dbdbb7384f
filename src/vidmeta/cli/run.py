"""CLI command that runs a batch."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from vidmeta.cli.exit_codes import ExitCode
from vidmeta.cli.ops import ops_options, resolve_ops
from vidmeta.cli.output import error_exit, print_summary, warning_output
from vidmeta.committer import PurgeMode
from vidmeta.config import get_config
from vidmeta.exceptions import ConfigError
from vidmeta.ops.models import NamingStyle
from vidmeta.orchestrator import BatchOrchestrator
from vidmeta.records import BatchPair, parse_batch_pair

logger = logging.getLogger(__name__)


def _validate_workers(
    ctx: click.Context, param: click.Parameter, value: int | None
) -> int | None:
    if value is not None and value < 1:
        raise click.BadParameter("must be at least 1")
    return value


def _parse_pairs(values: tuple[str, ...]) -> list[BatchPair]:
    """Parse and validate every ``--batch`` value.

    Raises:
        ConfigError: If a value is malformed or a side is missing.
    """
    pairs = [parse_batch_pair(v) for v in values]
    for pair in pairs:
        pair.validate()
    return pairs


def _flag(value: bool, opposite: bool) -> bool | None:
    """Override for one of two exclusive flags; the CLI beats the config file."""
    if value:
        return True
    return False if opposite else None


def _split_fields(values: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(
        part.strip() for value in values for part in value.split(",") if part.strip()
    )


@click.command("run")
@click.option(
    "--batch",
    "-b",
    "batches",
    multiple=True,
    required=True,
    metavar="VIDEO:META",
    help="Video file or directory and its metadata file or directory.",
)
@ops_options
@click.option(
    "--naming-style",
    type=click.Choice([s.value for s in NamingStyle]),
    default=None,
    help="Whole-filename normalization (default: skip).",
)
@click.option(
    "--meta-overwrite",
    is_flag=True,
    default=False,
    help="Overwrite existing metadata fields without asking.",
)
@click.option(
    "--meta-preserve",
    is_flag=True,
    default=False,
    help="Never overwrite existing metadata fields.",
)
@click.option(
    "--backup",
    is_flag=True,
    default=False,
    help="Save <name>.bak.<ext> before the first write to a metadata file.",
)
@click.option(
    "--purge-metafile",
    type=click.Choice([m.value for m in PurgeMode]),
    default=None,
    help="Delete metadata files of this kind after processing.",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Move finished videos and metadata files into this directory.",
)
@click.option(
    "--filename-meta-prefix",
    multiple=True,
    help="Metadata field(s) whose values prefix the filename (comma-separated).",
)
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    callback=_validate_workers,
    help="Number of parallel workers (default: from config or 5).",
)
@click.option(
    "--max-cpu",
    type=float,
    default=None,
    help="Hold new files while this process uses more CPU percent.",
)
@click.option(
    "--min-free-mem",
    type=int,
    default=None,
    help="Hold new files while less than this many bytes of memory are free.",
)
@click.option("--prefix-filter", default=None, help="Only videos starting with this.")
@click.option(
    "--suffix-filter", default=None, help="Only videos whose stem ends with this."
)
@click.option("--contains-filter", default=None, help="Only videos containing this.")
@click.option("--omit-filter", default=None, help="Skip videos containing this.")
@click.option(
    "--mux/--no-mux",
    default=None,
    help="Embed the final metadata into the video with ffmpeg.",
)
@click.option(
    "--json",
    "-j",
    "json_output",
    is_flag=True,
    default=False,
    help="Output in JSON format.",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    batches: tuple[str, ...],
    meta_ops: tuple[str, ...],
    filename_ops: tuple[str, ...],
    ops_file: Path | None,
    naming_style: str | None,
    meta_overwrite: bool,
    meta_preserve: bool,
    backup: bool,
    purge_metafile: str | None,
    output_dir: Path | None,
    filename_meta_prefix: tuple[str, ...],
    workers: int | None,
    max_cpu: float | None,
    min_free_mem: int | None,
    prefix_filter: str | None,
    suffix_filter: str | None,
    contains_filter: str | None,
    omit_filter: str | None,
    mux: bool | None,
    json_output: bool,
) -> None:
    """Rewrite metadata and rename videos for one or more batch pairs.

    Each --batch pairs a video with its metadata file, or a directory of
    videos with a directory of metadata files.

    Examples:

        vidmeta run -b clip.mp4:clip.info.json -m 'title:set:My Clip'

        vidmeta run -b ~/videos:~/videos -f 'date-tag:prefix:ymd' --naming-style spaces

        vidmeta run -b ~/in:~/in --ops-file preset.yaml -o ~/done --purge-metafile json
    """
    config_path = ctx.obj.get("config_path") if ctx.obj else None

    if meta_overwrite and meta_preserve:
        error_exit(
            "--meta-overwrite and --meta-preserve cannot be used together",
            ExitCode.CONFIG_ERROR,
            json_output,
        )

    try:
        pairs = _parse_pairs(batches)
        resolved = resolve_ops(meta_ops, filename_ops, ops_file)
        preset = resolved.preset

        prefix_fields = _split_fields(filename_meta_prefix)
        if not prefix_fields and preset is not None:
            prefix_fields = preset.filename_meta_prefix
        style = naming_style
        if style is None and preset is not None and preset.naming_style:
            style = preset.naming_style.value

        config = get_config(
            config_path,
            processing_workers=workers,
            processing_max_cpu_pct=max_cpu,
            processing_min_free_mem_bytes=min_free_mem,
            transform_naming_style=style,
            transform_filename_meta_prefix=prefix_fields or None,
            transform_meta_overwrite=_flag(meta_overwrite, meta_preserve),
            transform_meta_preserve=_flag(meta_preserve, meta_overwrite),
            transform_backup=True if backup else None,
            transform_purge_metafile=purge_metafile,
            transform_output_dir=output_dir,
            filters_prefix=prefix_filter,
            filters_suffix=suffix_filter,
            filters_contains=contains_filter,
            filters_omits=omit_filter,
            muxer_enabled=mux,
        )
    except ConfigError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR, json_output)

    if resolved.meta.is_empty and resolved.filename.is_empty and (
        config.transform.naming_style is NamingStyle.SKIP
    ):
        warning_output("no operations given; files will only be paired", json_output)

    orchestrator = BatchOrchestrator(
        config,
        resolved.meta,
        resolved.filename,
        overwrite=preset.overwrite if preset is not None else False,
        echo=not json_output,
        show_progress=not json_output and sys.stderr.isatty(),
    )
    try:
        summary = orchestrator.run(pairs)
    except ConfigError as e:
        error_exit(e.message, ExitCode.CONFIG_ERROR, json_output)

    if json_output:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary)

    if summary.interrupted:
        ctx.exit(int(ExitCode.INTERRUPTED))
