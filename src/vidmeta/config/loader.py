"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed to get_config as overrides)
2. Environment variables (VIDMETA_*)
3. Config file (~/.vidmeta/config.toml)
4. Default values

The config file uses one table per section::

    [processing]
    workers = 4
    max_cpu_pct = 80

    [transform]
    naming_style = "spaces"
    filename_meta_prefix = ["uploader"]

    [muxer]
    enabled = true

Environment variables:
- VIDMETA_CONFIG_PATH: Path to config file (overrides default location)
- VIDMETA_WORKERS, VIDMETA_MAX_CPU, VIDMETA_MIN_FREE_MEM
- VIDMETA_VIDEO_EXTENSIONS, VIDMETA_META_EXTENSIONS (comma-separated)
- VIDMETA_NAMING_STYLE, VIDMETA_FILENAME_META_PREFIX (comma-separated)
- VIDMETA_META_OVERWRITE, VIDMETA_META_PRESERVE, VIDMETA_BACKUP
- VIDMETA_PURGE_METAFILE, VIDMETA_OUTPUT_DIR
- VIDMETA_FILTER_PREFIX, VIDMETA_FILTER_SUFFIX, VIDMETA_FILTER_CONTAINS,
  VIDMETA_FILTER_OMITS
- VIDMETA_MUX, VIDMETA_FFMPEG_PATH, VIDMETA_FFPROBE_PATH, VIDMETA_MUXER_TIMEOUT
- VIDMETA_LOG_LEVEL, VIDMETA_LOG_FILE, VIDMETA_LOG_FORMAT
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from vidmeta.committer import PurgeMode
from vidmeta.config.env import EnvReader
from vidmeta.config.models import (
    FilterConfig,
    LoggingConfig,
    MuxerConfig,
    ProcessingConfig,
    TransformConfig,
    VidmetaConfig,
)
from vidmeta.exceptions import ConfigError
from vidmeta.ops.models import NamingStyle

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vidmeta"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

_SECTIONS: dict[str, type] = {
    "processing": ProcessingConfig,
    "transform": TransformConfig,
    "filters": FilterConfig,
    "muxer": MuxerConfig,
    "logging": LoggingConfig,
}


def _to_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip().lower().lstrip(".") for v in value if str(v).strip())


def _to_fields(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


def _to_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(value).expanduser()


# (section, field) -> converter from raw file/env/CLI values
_CONVERTERS: dict[tuple[str, str], Callable[[Any], Any]] = {
    ("processing", "video_extensions"): _to_tuple,
    ("processing", "meta_extensions"): _to_tuple,
    ("transform", "naming_style"): NamingStyle,
    ("transform", "filename_meta_prefix"): _to_fields,
    ("transform", "purge_metafile"): PurgeMode,
    ("transform", "output_dir"): _to_path,
    ("logging", "file"): _to_path,
}

# (section, field, environment variable, reader method)
_ENV_VARS: tuple[tuple[str, str, str, str], ...] = (
    ("processing", "workers", "VIDMETA_WORKERS", "get_int"),
    ("processing", "max_cpu_pct", "VIDMETA_MAX_CPU", "get_float"),
    ("processing", "min_free_mem_bytes", "VIDMETA_MIN_FREE_MEM", "get_int"),
    ("processing", "video_extensions", "VIDMETA_VIDEO_EXTENSIONS", "get_list"),
    ("processing", "meta_extensions", "VIDMETA_META_EXTENSIONS", "get_list"),
    ("transform", "naming_style", "VIDMETA_NAMING_STYLE", "get_str"),
    ("transform", "filename_meta_prefix", "VIDMETA_FILENAME_META_PREFIX", "get_list"),
    ("transform", "meta_overwrite", "VIDMETA_META_OVERWRITE", "get_bool"),
    ("transform", "meta_preserve", "VIDMETA_META_PRESERVE", "get_bool"),
    ("transform", "backup", "VIDMETA_BACKUP", "get_bool"),
    ("transform", "purge_metafile", "VIDMETA_PURGE_METAFILE", "get_str"),
    ("transform", "output_dir", "VIDMETA_OUTPUT_DIR", "get_path"),
    ("filters", "prefix", "VIDMETA_FILTER_PREFIX", "get_str"),
    ("filters", "suffix", "VIDMETA_FILTER_SUFFIX", "get_str"),
    ("filters", "contains", "VIDMETA_FILTER_CONTAINS", "get_str"),
    ("filters", "omits", "VIDMETA_FILTER_OMITS", "get_str"),
    ("muxer", "enabled", "VIDMETA_MUX", "get_bool"),
    ("muxer", "ffmpeg", "VIDMETA_FFMPEG_PATH", "get_str"),
    ("muxer", "ffprobe", "VIDMETA_FFPROBE_PATH", "get_str"),
    ("muxer", "timeout", "VIDMETA_MUXER_TIMEOUT", "get_int"),
    ("logging", "level", "VIDMETA_LOG_LEVEL", "get_str"),
    ("logging", "file", "VIDMETA_LOG_FILE", "get_path"),
    ("logging", "format", "VIDMETA_LOG_FORMAT", "get_str"),
)


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Config file location; ``VIDMETA_CONFIG_PATH`` overrides the default."""
    reader = env_reader or EnvReader()
    return reader.get_path("VIDMETA_CONFIG_PATH") or DEFAULT_CONFIG_FILE


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a TOML config file. A missing file yields an empty dict.

    Raises:
        ConfigError: If the file cannot be read or parsed, or has an unknown
            section.
    """
    if not path.exists():
        logger.debug("No config file at %s", path)
        return {}
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ConfigError(
            f"Unknown section(s) in {path}: {', '.join(sorted(unknown))}"
        )
    for name, section in data.items():
        if not isinstance(section, dict):
            raise ConfigError(f"[{name}] in {path} must be a table")
    return data


def _source_from_env(reader: EnvReader) -> dict[str, dict[str, Any]]:
    layer: dict[str, dict[str, Any]] = {}
    for section, name, var, method in _ENV_VARS:
        value = getattr(reader, method)(var)
        if value is not None:
            layer.setdefault(section, {})[name] = value
    return layer


def _source_from_overrides(overrides: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Map ``section_field`` keyword overrides to a layer; None means unset."""
    layer: dict[str, dict[str, Any]] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        section, _, name = key.partition("_")
        if section not in _SECTIONS or not name:
            raise ConfigError(f"Unknown configuration override {key!r}")
        layer.setdefault(section, {})[name] = value
    return layer


def _build_section(section: str, values: dict[str, Any]) -> Any:
    cls = _SECTIONS[section]
    known = set(cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ConfigError(
            f"Unknown option(s) in [{section}]: {', '.join(sorted(unknown))}"
        )

    kwargs: dict[str, Any] = {}
    for name, raw in values.items():
        convert = _CONVERTERS.get((section, name))
        try:
            kwargs[name] = convert(raw) if convert else raw
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid value for {section}.{name}: {raw!r}", field=name
            ) from e
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [{section}] configuration: {e}") from e


def get_config(
    config_path: Path | None = None,
    env_reader: EnvReader | None = None,
    **overrides: Any,
) -> VidmetaConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VIDMETA_CONFIG_PATH).
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        **overrides: CLI values keyed ``<section>_<field>``, e.g.
            ``processing_workers=3`` or ``logging_level="debug"``. None
            values are ignored.

    Returns:
        Merged VidmetaConfig.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    reader = env_reader or EnvReader()
    path = config_path or get_default_config_path(reader)

    merged: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}
    for layer in (
        load_config_file(path),
        _source_from_env(reader),
        _source_from_overrides(overrides),
    ):
        for section, values in layer.items():
            merged[section].update(values)

    config = VidmetaConfig(
        **{name: _build_section(name, values) for name, values in merged.items()}
    )
    logger.debug("Loaded configuration (file: %s)", path)
    return config

