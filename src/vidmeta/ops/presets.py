"""Preset (ops file) loading and validation.

A preset is a YAML mapping that bundles operations and per-run naming
choices so they can be reused across batches::

    meta_ops:
      - "title:replace:_: "
      - "title:date-tag:prefix:ymd"
    filename_ops:
      - "date-tag:prefix:ymd"
    naming_style: spaces
    overwrite: true
    filename_meta_prefix: [uploader]

Files are parsed with PyYAML and validated with Pydantic models before the
operation strings go through the regular DSL parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vidmeta.exceptions import ConfigError
from vidmeta.ops.models import FilenameOps, MetaOps, NamingStyle
from vidmeta.ops.parser import parse_filename_ops, parse_meta_ops


class PresetModel(BaseModel):
    """Pydantic model for a preset file."""

    model_config = ConfigDict(extra="forbid")

    meta_ops: list[str] = Field(default_factory=list)
    filename_ops: list[str] = Field(default_factory=list)
    naming_style: str | None = None
    overwrite: bool = False
    filename_meta_prefix: list[str] = Field(default_factory=list)

    @field_validator("naming_style")
    @classmethod
    def validate_naming_style(cls, v: str | None) -> str | None:
        """Validate naming style against the known styles."""
        if v is None:
            return v
        valid = {s.value for s in NamingStyle}
        if v not in valid:
            raise ValueError(f"must be one of {sorted(valid)}, got {v!r}")
        return v


@dataclass(frozen=True)
class Preset:
    """A parsed, ready-to-merge preset."""

    meta_ops: MetaOps
    filename_ops: FilenameOps
    naming_style: NamingStyle | None
    overwrite: bool
    filename_meta_prefix: tuple[str, ...]
    source: Path | None = None


def load_preset(path: Path) -> Preset:
    """Load and validate a preset from a YAML file.

    Args:
        path: Path to the YAML preset.

    Returns:
        Parsed Preset.

    Raises:
        ConfigError: If the file is missing, not valid YAML, fails schema
            validation, or contains malformed operations.
    """
    if not path.exists():
        raise ConfigError(f"Preset file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e

    if data is None:
        raise ConfigError(f"Preset file is empty: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Preset file must be a YAML mapping: {path}")

    preset = load_preset_from_dict(data)
    return Preset(
        meta_ops=preset.meta_ops,
        filename_ops=preset.filename_ops,
        naming_style=preset.naming_style,
        overwrite=preset.overwrite,
        filename_meta_prefix=preset.filename_meta_prefix,
        source=path,
    )


def load_preset_from_dict(data: dict[str, Any]) -> Preset:
    """Validate a preset mapping and parse its operations.

    Raises:
        ConfigError: If the data is invalid.
    """
    try:
        model = PresetModel.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e

    return Preset(
        meta_ops=parse_meta_ops(model.meta_ops),
        filename_ops=parse_filename_ops(model.filename_ops),
        naming_style=NamingStyle(model.naming_style) if model.naming_style else None,
        overwrite=model.overwrite,
        filename_meta_prefix=tuple(model.filename_meta_prefix),
    )


def _format_validation_error(error: ValidationError) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"Preset validation failed: {loc}: {msg}"
        return f"Preset validation failed: {msg}"
    return f"Preset validation failed: {error}"
