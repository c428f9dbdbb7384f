"""Merge CLI logging options over the configured LoggingConfig."""

from __future__ import annotations

import dataclasses
from pathlib import Path

from vidmeta.config.models import LoggingConfig


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Return a copy of ``base`` with every non-None override applied.

    Raises:
        ValueError: If an override is invalid (from LoggingConfig validation).
    """
    changes = {
        name: value
        for name, value in (
            ("level", level),
            ("file", file),
            ("format", format),
            ("include_stderr", include_stderr),
        )
        if value is not None
    }
    return dataclasses.replace(base, **changes)
