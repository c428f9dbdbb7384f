"""Configuration: dataclass settings layered from defaults, file, env and CLI."""

from vidmeta.config.env import EnvReader
from vidmeta.config.loader import (
    DEFAULT_CONFIG_FILE,
    get_config,
    get_default_config_path,
    load_config_file,
)
from vidmeta.config.logging_factory import build_logging_config
from vidmeta.config.models import (
    FilterConfig,
    LoggingConfig,
    MuxerConfig,
    ProcessingConfig,
    TransformConfig,
    VidmetaConfig,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "EnvReader",
    "FilterConfig",
    "LoggingConfig",
    "MuxerConfig",
    "ProcessingConfig",
    "TransformConfig",
    "VidmetaConfig",
    "build_logging_config",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
