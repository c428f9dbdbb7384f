"""Commit renames, moves and deletions for processed records.

Renames stay inside a directory and are atomic. Moves into an output
directory try a rename first and fall back to a verified copy when the
target is on another filesystem.
"""

import errno
import hashlib
import logging
import os
import shutil
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from vidmeta.backup import COPY_BUFFER_SIZE, rename_to_backup
from vidmeta.exceptions import HashMismatchError, MetaIOError
from vidmeta.pairing import SIDECAR_INFIXES

logger = logging.getLogger(__name__)

# Maximum number of suffix attempts before giving up
MAX_UNIQUE_PATH_ATTEMPTS = 10000

__all__ = [
    "MoveErrorType",
    "MoveResult",
    "PurgeMode",
    "delete_metafile",
    "ensure_unique_path",
    "move",
    "move_file",
    "rename_to_backup",
    "sha256_file",
    "write_results",
]


class MoveErrorType(Enum):
    """Categorization of move operation errors."""

    DISK_SPACE = "disk_space"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    CROSS_DEVICE = "cross_device"
    HASH_MISMATCH = "hash_mismatch"
    IO_ERROR = "io_error"
    UNKNOWN = "unknown"


_ERRNO_TO_TYPE = {
    errno.ENOSPC: MoveErrorType.DISK_SPACE,
    errno.EACCES: MoveErrorType.PERMISSION,
    errno.EPERM: MoveErrorType.PERMISSION,
    errno.ENOENT: MoveErrorType.NOT_FOUND,
    errno.EXDEV: MoveErrorType.CROSS_DEVICE,
    errno.EIO: MoveErrorType.IO_ERROR,
    errno.EROFS: MoveErrorType.IO_ERROR,
}


@dataclass
class MoveResult:
    """Result of a move operation."""

    success: bool
    source_path: Path
    destination_path: Path | None = None
    error_message: str | None = None
    error_type: MoveErrorType | None = None

    def raise_for_error(self) -> None:
        """Raise the matching VidmetaError if the move failed."""
        if self.success:
            return
        message = self.error_message or f"failed to move {self.source_path}"
        if self.error_type is MoveErrorType.HASH_MISMATCH:
            raise HashMismatchError(message)
        raise MetaIOError(message)


class PurgeMode(Enum):
    """Which sidecar kinds to delete after processing."""

    ALL = "all"
    JSON = "json"
    NFO = "nfo"
    NONE = "none"


def ensure_unique_path(
    path: Path, max_attempts: int = MAX_UNIQUE_PATH_ATTEMPTS
) -> Path:
    """Ensure a path is unique by adding a suffix if needed.

    If the path already exists, adds (1), (2), etc. until unique. Multi-part
    sidecar suffixes such as ``.info.json`` stay together at the end.

    Raises:
        MetaIOError: If no unique path found within max_attempts.
    """
    if not path.exists():
        return path

    name = path.name
    suffix = next(
        (name[-len(i) :] for i in SIDECAR_INFIXES if name.lower().endswith(i)),
        path.suffix,
    )
    base = name[: len(name) - len(suffix)]
    parent = path.parent

    for counter in range(1, max_attempts + 1):
        new_path = parent / f"{base} ({counter}){suffix}"
        if not new_path.exists():
            return new_path

    raise MetaIOError(
        f"Could not find unique path after {max_attempts} attempts: {path}"
    )


def _same_path(a: Path, b: Path) -> bool:
    return str(a).lower() == str(b).lower()


def _needs_rename(src: Path, dst: Path | None, skip: bool) -> bool:
    return not skip and dst is not None and not _same_path(src, dst)


def write_results(
    src_video: Path,
    dst_video: Path | None,
    src_meta: Path,
    dst_meta: Path | None,
    skip_video: bool = False,
    skip_meta: bool = False,
) -> tuple[Path, Path]:
    """Rename a video and its sidecar to their new names.

    A side is left alone when it is skipped, has no destination, or the
    destination equals the source (ignoring case). If the sidecar rename
    fails after the video was renamed, the video rename is undone.

    Returns:
        The final (video, sidecar) paths.

    Raises:
        MetaIOError: If a rename fails.
    """
    final_video, final_meta = src_video, src_meta

    if _needs_rename(src_video, dst_video, skip_video):
        assert dst_video is not None
        final_video = ensure_unique_path(dst_video)
        try:
            src_video.rename(final_video)
        except OSError as e:
            raise MetaIOError(
                f"failed to rename {src_video} to {final_video}: {e}"
            ) from e
        logger.info("Renamed %s -> %s", src_video.name, final_video.name)

    if _needs_rename(src_meta, dst_meta, skip_meta):
        assert dst_meta is not None
        target = ensure_unique_path(dst_meta)
        try:
            src_meta.rename(target)
        except OSError as e:
            if final_video != src_video:
                _rollback(final_video, src_video)
            raise MetaIOError(
                f"failed to rename {src_meta} to {target}: {e}"
            ) from e
        final_meta = target
        logger.info("Renamed %s -> %s", src_meta.name, final_meta.name)

    return final_video, final_meta


def _rollback(current: Path, original: Path) -> None:
    try:
        current.rename(original)
        logger.warning("Rolled back rename of %s to %s", current, original)
    except OSError as e:
        logger.error("Failed to roll back %s to %s: %s", current, original, e)


def sha256_file(path: Path) -> str:
    """Hex SHA-256 of a file, read in COPY_BUFFER_SIZE chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(COPY_BUFFER_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def _copy_verified(src: Path, dst: Path, src_hash: str) -> None:
    with open(src, "rb") as reader, open(dst, "xb") as writer:
        shutil.copyfileobj(reader, writer, COPY_BUFFER_SIZE)
        writer.flush()
        os.fsync(writer.fileno())
    shutil.copymode(src, dst)

    src_size, dst_size = src.stat().st_size, dst.stat().st_size
    if src_size != dst_size:
        raise MetaIOError(
            f"size mismatch copying {src} to {dst}: {src_size} != {dst_size}"
        )
    dst_hash = sha256_file(dst)
    if dst_hash != src_hash:
        raise HashMismatchError(
            f"hash mismatch copying {src} to {dst}: {src_hash} != {dst_hash}"
        )


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Failed to remove partial destination %s: %s", path, e)


def move_file(src: Path, dst: Path) -> MoveResult:
    """Move one file, copying and verifying across filesystems.

    The source hash is captured before anything else. On any failure the
    destination is removed.
    """
    dst = ensure_unique_path(dst)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        src_hash = sha256_file(src)
    except OSError as e:
        return _failed(src, dst, e)

    try:
        logger.info("Moving file: %s -> %s", src, dst)
        os.rename(src, dst)
        return MoveResult(success=True, source_path=src, destination_path=dst)
    except OSError as e:
        if e.errno != errno.EXDEV:
            return _failed(src, dst, e)
        logger.debug("Cross-device move of %s, copying instead", src)

    try:
        _copy_verified(src, dst, src_hash)
        src.unlink()
    except HashMismatchError as e:
        _discard(dst)
        logger.error("Move failed (%s): %s", MoveErrorType.HASH_MISMATCH.value, e)
        return MoveResult(
            success=False,
            source_path=src,
            error_message=e.message,
            error_type=MoveErrorType.HASH_MISMATCH,
        )
    except MetaIOError as e:
        _discard(dst)
        logger.error("Move failed (%s): %s", MoveErrorType.IO_ERROR.value, e)
        return MoveResult(
            success=False,
            source_path=src,
            error_message=e.message,
            error_type=MoveErrorType.IO_ERROR,
        )
    except OSError as e:
        _discard(dst)
        return _failed(src, dst, e)

    logger.info("Move completed: %s", dst)
    return MoveResult(success=True, source_path=src, destination_path=dst)


def _failed(src: Path, dst: Path, error: OSError) -> MoveResult:
    error_type = _ERRNO_TO_TYPE.get(error.errno, MoveErrorType.UNKNOWN)
    logger.error("Move failed (%s): %s", error_type.value, error)
    return MoveResult(
        success=False,
        source_path=src,
        destination_path=None,
        error_message=f"failed to move {src} to {dst}: {error}",
        error_type=error_type,
    )


def move(video: Path, meta: Path | None, target_dir: Path) -> list[MoveResult]:
    """Move a video and (optionally) its sidecar into ``target_dir``.

    The sidecar is not moved when the video move fails. When the sidecar
    move fails, the video is moved back so the pair stays together.
    """
    video_result = move_file(video, target_dir / video.name)
    if meta is None or not video_result.success:
        return [video_result]

    meta_result = move_file(meta, target_dir / meta.name)
    if not meta_result.success:
        assert video_result.destination_path is not None
        undo = move_file(video_result.destination_path, video)
        if undo.success and undo.destination_path == video:
            logger.warning("Moved %s back after failed sidecar move", video.name)
            video_result = MoveResult(success=True, source_path=video)
        else:
            logger.error(
                "Could not move %s back to %s: %s",
                video_result.destination_path,
                video,
                undo.error_message or f"landed at {undo.destination_path}",
            )
    return [video_result, meta_result]


def delete_metafile(path: Path, purge_mode: PurgeMode) -> bool:
    """Delete a sidecar if its extension is covered by ``purge_mode``.

    Returns:
        True if the file was deleted.

    Raises:
        MetaIOError: If the path is a directory or not a regular file, or
            the delete fails.
    """
    if purge_mode is PurgeMode.NONE:
        return False
    try:
        mode = path.lstat().st_mode
    except OSError as e:
        raise MetaIOError(f"cannot stat metadata file {path}: {e}") from e
    if stat.S_ISDIR(mode):
        raise MetaIOError(f"refusing to delete directory {path}")
    if not stat.S_ISREG(mode):
        raise MetaIOError(f"refusing to delete non-regular file {path}")

    ext = path.suffix.lower().lstrip(".")
    allowed = ("json", "nfo") if purge_mode is PurgeMode.ALL else (purge_mode.value,)
    if ext not in allowed:
        logger.debug("Keeping %s (purge mode %s)", path, purge_mode.value)
        return False

    try:
        path.unlink()
    except OSError as e:
        raise MetaIOError(f"failed to delete metadata file {path}: {e}") from e
    logger.info("Deleted metadata file %s", path)
    return True
