"""CLI module for vidmeta."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from vidmeta import __version__
from vidmeta.cli.exit_codes import ExitCode
from vidmeta.cli.output import error_exit
from vidmeta.config import build_logging_config, get_config
from vidmeta.exceptions import ConfigError
from vidmeta.logging import configure_logging

logger = logging.getLogger(__name__)


def _configure_logging(
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the config file, environment and CLI options.

    Args:
        config_path: Config file to read the [logging] section from.
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
    """
    try:
        base = get_config(config_path).logging
        logging_config = build_logging_config(
            base,
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    except (ConfigError, ValueError) as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)

    configure_logging(logging_config)
    logger.debug(
        "vidmeta %s starting: log_level=%s, log_file=%s",
        __version__,
        logging_config.level,
        logging_config.file or "stderr",
    )


@click.group()
@click.version_option(version=__version__, prog_name="vidmeta")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: $VIDMETA_CONFIG_PATH or ~/.vidmeta/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """vidmeta - Rewrite video sidecar metadata and rename videos to match."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    _configure_logging(config_path, log_level, log_file, log_json)


def _register_commands() -> None:
    from vidmeta.cli.ops import check_ops_command, parse_date_command
    from vidmeta.cli.run import run_command

    main.add_command(run_command)
    main.add_command(check_ops_command)
    main.add_command(parse_date_command)


_register_commands()
