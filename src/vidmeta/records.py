"""Per-video records and batch pair descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from vidmeta.exceptions import ConfigError, ErrorKind
from vidmeta.ops.models import FilenameOps, MetaOps


class MetaKind(Enum):
    """Sidecar file kind."""

    JSON = "json"
    NFO = "nfo"

    @classmethod
    def from_extension(cls, ext: str) -> MetaKind | None:
        """Map ``.json``/``.nfo`` (any case) to a kind, else None."""
        try:
            return cls(ext.lower().lstrip("."))
        except ValueError:
            return None


class RecordState(Enum):
    """Lifecycle of one record through the pipeline."""

    DISCOVERED = "discovered"
    META_OPENED = "meta_opened"
    META_TRANSFORMED = "meta_transformed"
    MUX_REQUESTED = "mux_requested"
    MUXED = "muxed"
    FILENAME_COMPUTED = "filename_computed"
    COMMITTED = "committed"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class ComputedTags:
    """Strings derived from the record's final metadata."""

    date_tag: str = ""
    filename_meta_prefix: str = ""
    formatted_date: str = ""


@dataclass(frozen=True)
class RecordOps:
    """Snapshot of the operations to run for one record."""

    meta: MetaOps = field(default_factory=MetaOps)
    filename: FilenameOps = field(default_factory=FilenameOps)


@dataclass
class RecordFailure:
    """Where and why a record stopped."""

    at: RecordState
    kind: ErrorKind
    message: str


@dataclass
class FileRecord:
    """One video paired with its sidecar metadata file."""

    original_video_path: Path
    meta_path: Path
    meta_kind: MetaKind
    ops: RecordOps = field(default_factory=RecordOps)
    overwrite: bool = False

    computed: ComputedTags = field(default_factory=ComputedTags)
    final_video_path: Path | None = None
    final_meta_path: Path | None = None
    meta_already_applied: bool = False
    state: RecordState = RecordState.DISCOVERED
    failure: RecordFailure | None = None

    @property
    def video_dir(self) -> Path:
        return self.original_video_path.parent

    @property
    def video_base(self) -> str:
        return self.original_video_path.stem

    @property
    def video_ext(self) -> str:
        return self.original_video_path.suffix

    @property
    def meta_dir(self) -> Path:
        return self.meta_path.parent

    @property
    def meta_base(self) -> str:
        return self.meta_path.stem

    @property
    def meta_ext(self) -> str:
        return self.meta_path.suffix

    def advance(self, state: RecordState) -> None:
        """Move the record to ``state``."""
        self.state = state

    def fail(self, kind: ErrorKind, message: str, canceled: bool = False) -> None:
        """Mark the record failed (or canceled) at its current state."""
        self.failure = RecordFailure(at=self.state, kind=kind, message=message)
        self.state = RecordState.CANCELED if canceled else RecordState.FAILED


@dataclass(frozen=True)
class BatchPair:
    """A video source and the metadata source to pair it with.

    Both sides are either files or directories.
    """

    video: Path
    meta: Path

    def validate(self) -> None:
        """Check both sides exist and are the same kind.

        Raises:
            ConfigError: If a side is missing or kinds differ.
        """
        for side in (self.video, self.meta):
            if not side.exists():
                raise ConfigError(f"batch path does not exist: {side}")
        if self.video.is_dir() != self.meta.is_dir():
            raise ConfigError(
                f"batch pair must be two files or two directories: "
                f"{self.video} : {self.meta}"
            )

    @property
    def is_directory_pair(self) -> bool:
        return self.video.is_dir()


def parse_batch_pair(value: str) -> BatchPair:
    """Parse ``video_path_or_dir:meta_path_or_dir``.

    Raises:
        ConfigError: If the value does not contain exactly one colon or a
            side is empty.
    """
    parts = value.split(":")
    if len(parts) != 2:
        raise ConfigError(
            f"invalid batch pair {value!r}: expected 'video:meta' "
            "(colons inside paths are not allowed)"
        )
    video, meta = (p.strip() for p in parts)
    if not video or not meta:
        raise ConfigError(f"invalid batch pair {value!r}: empty side")
    return BatchPair(video=Path(video).expanduser(), meta=Path(meta).expanduser())
