"""Runtime settings.

Each section validates itself in ``__post_init__`` and raises ValueError;
the loader turns those into ConfigError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from vidmeta.committer import PurgeMode
from vidmeta.ops.models import NamingStyle
from vidmeta.pairing import DEFAULT_META_EXTENSIONS, DEFAULT_VIDEO_EXTENSIONS


@dataclass(frozen=True)
class ProcessingConfig:
    """Worker pool and resource gate settings."""

    workers: int = 5
    max_cpu_pct: float = 100.0
    min_free_mem_bytes: int = 0
    video_extensions: tuple[str, ...] = DEFAULT_VIDEO_EXTENSIONS
    meta_extensions: tuple[str, ...] = DEFAULT_META_EXTENSIONS

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.max_cpu_pct <= 0:
            raise ValueError(f"max_cpu_pct must be positive, got {self.max_cpu_pct}")
        if self.min_free_mem_bytes < 0:
            raise ValueError(
                "min_free_mem_bytes must not be negative, "
                f"got {self.min_free_mem_bytes}"
            )
        if not self.video_extensions:
            raise ValueError("video_extensions must not be empty")
        unknown = set(self.meta_extensions) - set(DEFAULT_META_EXTENSIONS)
        if unknown or not self.meta_extensions:
            raise ValueError(
                f"meta_extensions must be a subset of {DEFAULT_META_EXTENSIONS}, "
                f"got {self.meta_extensions}"
            )


@dataclass(frozen=True)
class TransformConfig:
    """How records are transformed and committed."""

    naming_style: NamingStyle = NamingStyle.SKIP
    filename_meta_prefix: tuple[str, ...] = ()
    meta_overwrite: bool = False
    meta_preserve: bool = False
    backup: bool = False
    purge_metafile: PurgeMode = PurgeMode.NONE
    output_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.meta_overwrite and self.meta_preserve:
            raise ValueError("meta_overwrite and meta_preserve cannot both be set")


@dataclass(frozen=True)
class FilterConfig:
    """Case-insensitive video name filters (empty disables)."""

    prefix: str = ""
    suffix: str = ""
    contains: str = ""
    omits: str = ""


@dataclass(frozen=True)
class MuxerConfig:
    """External ffmpeg muxer settings. Disabled by default."""

    enabled: bool = False
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    # Seconds; a remux copies every stream so large files need headroom
    timeout: int = 600

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class LoggingConfig:
    """Log destination, level and format."""

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = False
    # Rotate at 10 MiB
    max_bytes: int = 10_485_760
    backup_count: int = 5

    def __post_init__(self) -> None:
        levels = ("debug", "info", "warning", "error")
        if self.level.lower() not in levels:
            raise ValueError(f"level must be one of {levels}, got {self.level!r}")
        formats = ("text", "json")
        if self.format.lower() not in formats:
            raise ValueError(f"format must be one of {formats}, got {self.format!r}")


@dataclass(frozen=True)
class VidmetaConfig:
    """All runtime settings, passed by value to the engine."""

    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    muxer: MuxerConfig = field(default_factory=MuxerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
