"""Pair videos with their sidecar metadata files.

Each batch pair names a video source and a metadata source, both files or
both directories. Directories are scanned one level deep. Videos and
sidecars are joined on a normalized key: the lower-cased stem with
whitespace removed and any known sidecar infix (``.info.json`` and
friends) stripped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from vidmeta.backup import is_backup_name
from vidmeta.exceptions import MatchError, MetaIOError
from vidmeta.records import BatchPair, FileRecord, MetaKind

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_EXTENSIONS: tuple[str, ...] = (
    "3gp",
    "avi",
    "flv",
    "m4v",
    "mkv",
    "mov",
    "mp4",
    "mpeg",
    "mpg",
    "ogv",
    "ts",
    "webm",
    "wmv",
)
DEFAULT_META_EXTENSIONS: tuple[str, ...] = ("json", "nfo")

# Stripped in this order; the first match wins.
SIDECAR_INFIXES: tuple[str, ...] = (
    ".info.json",
    ".metadata.json",
    ".model.json",
    ".manifest.cdm.json",
    ".movie.nfo",
    ".tvshow.nfo",
    ".episode.nfo",
    ".disc.nfo",
    ".release.nfo",
    ".bdinfo.nfo",
    ".mediainfo.nfo",
)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class FileFilters:
    """Case-insensitive name filters applied during scans.

    Empty strings disable a filter.
    """

    prefix: str = ""
    suffix: str = ""
    contains: str = ""
    omits: str = ""

    def accepts(self, name: str) -> bool:
        stem = Path(name).stem.lower()
        lower = name.lower()
        if self.prefix and not lower.startswith(self.prefix.lower()):
            return False
        if self.suffix and not stem.endswith(self.suffix.lower()):
            return False
        if self.contains and self.contains.lower() not in lower:
            return False
        if self.omits and self.omits.lower() in lower:
            return False
        return True


def normalize_key(name: str) -> str:
    """Lower-case a name and remove all whitespace."""
    return _WHITESPACE.sub("", name.lower())


def meta_keys(meta_name: str) -> list[str]:
    """Lookup keys for a sidecar file name.

    The infix-stripped key comes first. The extension-only key is also
    returned so a video whose stem itself ends in an infix still matches.
    """
    lower = meta_name.lower()
    keys: list[str] = []
    for infix in SIDECAR_INFIXES:
        if lower.endswith(infix):
            keys.append(normalize_key(meta_name[: -len(infix)]))
            break
    plain = normalize_key(Path(meta_name).stem)
    if plain not in keys:
        keys.append(plain)
    return keys


def _has_extension(path: Path, extensions: tuple[str, ...]) -> bool:
    return path.suffix.lower().lstrip(".") in extensions


def scan(
    source: Path, extensions: tuple[str, ...], filters: FileFilters | None = None
) -> list[Path]:
    """List matching regular files in a directory (or the file itself).

    Backup files are skipped.

    Raises:
        MetaIOError: If the directory cannot be read.
    """
    filters = filters or FileFilters()
    extensions = tuple(e.lower().lstrip(".") for e in extensions)

    if source.is_file():
        candidates = [source]
    else:
        try:
            candidates = sorted(p for p in source.iterdir() if p.is_file())
        except OSError as e:
            raise MetaIOError(f"failed to scan directory {source}: {e}") from e

    found = []
    for path in candidates:
        if is_backup_name(path.name):
            logger.debug("Skipping backup file %s", path)
            continue
        if not _has_extension(path, extensions):
            continue
        if not filters.accepts(path.name):
            logger.debug("Filtered out %s", path)
            continue
        found.append(path)
    return found


def pair_files(
    pair: BatchPair,
    video_extensions: tuple[str, ...] = DEFAULT_VIDEO_EXTENSIONS,
    meta_extensions: tuple[str, ...] = DEFAULT_META_EXTENSIONS,
    filters: FileFilters | None = None,
) -> list[FileRecord]:
    """Match every video in ``pair`` with a sidecar.

    Filters apply to video names only. Unmatched videos are dropped with a
    warning.

    Raises:
        ConfigError: If the pair is invalid.
        MetaIOError: If a directory cannot be scanned.
        MatchError: If no video could be paired.
    """
    pair.validate()

    videos = scan(pair.video, video_extensions, filters)
    metas = scan(pair.meta, meta_extensions)
    if not pair.is_directory_pair:
        # An explicit file pair is matched regardless of names
        if videos and metas:
            kind = MetaKind.from_extension(metas[0].suffix)
            if kind is not None:
                return [
                    FileRecord(
                        original_video_path=videos[0],
                        meta_path=metas[0],
                        meta_kind=kind,
                    )
                ]
        raise MatchError(
            f"no usable video/metadata files in {pair.video} : {pair.meta}"
        )

    lookup: dict[str, Path] = {}
    for meta in metas:
        for key in meta_keys(meta.name):
            if key in lookup:
                logger.debug("Key %r already mapped to %s", key, lookup[key])
                continue
            lookup[key] = meta

    records = []
    for video in videos:
        meta = lookup.get(normalize_key(video.stem))
        if meta is None:
            logger.warning("No metadata file found for %s", video)
            continue
        kind = MetaKind.from_extension(meta.suffix)
        if kind is None:
            logger.warning("Unsupported metadata file %s for %s", meta, video)
            continue
        logger.debug("Paired %s with %s", video.name, meta.name)
        records.append(
            FileRecord(original_video_path=video, meta_path=meta, meta_kind=kind)
        )

    if not records:
        raise MatchError(
            f"no videos in {pair.video} could be matched to metadata in {pair.meta}"
        )
    logger.info("Matched %d of %d videos in %s", len(records), len(videos), pair.video)
    return records
