"""Backup naming and creation utilities.

Backups live next to the original as ``<stem>.bak.<ext>``. Files carrying
the tag are skipped by directory scans.
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from vidmeta.exceptions import MetaIOError

logger = logging.getLogger(__name__)

BACKUP_TAG = ".bak."

# 4 MiB streaming buffer for copies
COPY_BUFFER_SIZE = 4 * 1024 * 1024


def get_backup_path(file_path: Path) -> Path:
    """Get the backup path for a given file.

    Args:
        file_path: Path to the original file.

    Returns:
        ``<stem>.bak.<ext>`` in the same directory.
    """
    return file_path.with_name(f"{file_path.stem}.bak{file_path.suffix}")


def is_backup_name(name: str) -> bool:
    """Check whether a file name carries the backup tag."""
    return BACKUP_TAG in name


def create_backup_from_handle(handle: BinaryIO, file_path: Path) -> Path:
    """Stream the contents of an open handle to the backup path.

    The handle's position is restored afterwards.

    Raises:
        MetaIOError: If the backup cannot be written.
    """
    backup_path = get_backup_path(file_path)
    position = handle.tell()
    logger.debug("Creating backup of %s as %s", file_path, backup_path)
    try:
        handle.seek(0)
        with open(backup_path, "wb") as out:
            shutil.copyfileobj(handle, out, COPY_BUFFER_SIZE)
    except OSError as e:
        raise MetaIOError(f"failed to create backup {backup_path}: {e}") from e
    finally:
        handle.seek(position)
    logger.debug("Backup created at %s", backup_path)
    return backup_path


def rename_to_backup(file_path: Path) -> Path:
    """Rename a file to its backup name.

    Returns:
        The backup path.

    Raises:
        MetaIOError: If the rename fails.
    """
    backup_path = get_backup_path(file_path)
    try:
        file_path.rename(backup_path)
    except OSError as e:
        raise MetaIOError(
            f"failed to back up {file_path} as {backup_path}: {e}"
        ) from e
    logger.info("Renamed %s to backup %s", file_path, backup_path)
    return backup_path
