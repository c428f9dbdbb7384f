"""Common sidecar file handling.

A SidecarFile owns an open, exclusively locked handle on one metadata file
for the lifetime of a record. Writes replace the whole file under an
internal mutex (seek, truncate, write, fsync) and restore the handle's
position if anything fails.
"""

from __future__ import annotations

import fcntl
import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

from vidmeta.backup import create_backup_from_handle
from vidmeta.exceptions import MetaIOError, SidecarLockError

if TYPE_CHECKING:
    from vidmeta.records import FileRecord, MetaKind
    from vidmeta.transform.meta import MetaTransformer

logger = logging.getLogger(__name__)


class FieldStore(Mapping[str, Any], ABC):
    """Editable view over a sidecar's fields.

    Reading goes through the Mapping interface. ``set`` returns whether the
    stored value actually changed.
    """

    @abstractmethod
    def set(self, field: str, value: str) -> bool:
        """Insert or replace a field value."""

    def is_string(self, field: str) -> bool:
        """True if the field exists and holds a string."""
        return isinstance(self.get(field), str)

    def is_additive(self, field: str) -> bool:
        """True if setting ``field`` adds to it rather than replacing it."""
        return False


class SidecarFile(ABC):
    """Base class for JSON and NFO sidecar adapters."""

    kind: MetaKind

    def __init__(
        self,
        path: Path,
        *,
        backup: bool = False,
        transformer: MetaTransformer | None = None,
    ) -> None:
        """Initialize the adapter (the file is not opened yet).

        Args:
            path: Path to the sidecar file.
            backup: Write ``<stem>.bak.<ext>`` before the first write.
            transformer: Metadata transformer used by the edit methods.
        """
        self.path = path
        self.backup = backup
        self.transformer = transformer
        self.backup_path: Path | None = None
        self._handle: BinaryIO | None = None
        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Handle lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> SidecarFile:
        """Open the file and take an exclusive, non-blocking lock.

        Raises:
            MetaIOError: If the file cannot be opened.
            SidecarLockError: If another holder has the lock.
        """
        if self._handle is not None:
            return self
        try:
            handle = open(self.path, "r+b")
        except OSError as e:
            raise MetaIOError(f"failed to open sidecar {self.path}: {e}") from e
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            handle.close()
            raise SidecarLockError(
                f"sidecar is being modified by another operation: {self.path}"
            ) from e
        self._handle = handle
        logger.debug("Opened sidecar %s", self.path)
        return self

    def close(self) -> None:
        """Release the lock and close the handle."""
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> SidecarFile:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def handle(self) -> BinaryIO:
        if self._handle is None:
            raise MetaIOError(f"sidecar is not open: {self.path}")
        return self._handle

    # -------------------------------------------------------------------------
    # Raw IO
    # -------------------------------------------------------------------------

    def read_bytes(self) -> bytes:
        """Read the whole file from the start."""
        try:
            self.handle.seek(0)
            return self.handle.read()
        except OSError as e:
            raise MetaIOError(f"failed to read sidecar {self.path}: {e}") from e

    def write_bytes(self, payload: bytes) -> None:
        """Replace the file contents: seek, truncate, write, fsync.

        A backup is taken before the first write when enabled.

        Raises:
            MetaIOError: If any step fails. The handle position is restored.
        """
        handle = self.handle
        with self._write_lock:
            position = handle.tell()
            try:
                if self.backup and self.backup_path is None:
                    self.backup_path = create_backup_from_handle(handle, self.path)
                handle.seek(0)
                handle.truncate()
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            except OSError as e:
                try:
                    handle.seek(position)
                except OSError as seek_err:
                    logger.error(
                        "Failed to restore position in %s: %s", self.path, seek_err
                    )
                raise MetaIOError(f"failed to write sidecar {self.path}: {e}") from e
        logger.debug("Wrote %d bytes to %s", len(payload), self.path)

    # -------------------------------------------------------------------------
    # Capability
    # -------------------------------------------------------------------------

    @abstractmethod
    def decode(self) -> dict[str, Any]:
        """Return the sidecar's fields as a new mapping."""

    @abstractmethod
    def refresh(self) -> dict[str, Any]:
        """Re-read the file from disk and return its fields."""

    @abstractmethod
    def write(self, data: Mapping[str, Any]) -> None:
        """Persist ``data`` to disk."""

    @abstractmethod
    def field_store(self) -> FieldStore:
        """Return an editable view over the current fields."""

    @abstractmethod
    def commit_store(self, store: FieldStore) -> None:
        """Write an edited store back to disk."""

    def make_meta_edits(self, record: FileRecord) -> bool:
        """Apply the record's metadata operations and write on change.

        Returns:
            True if any field changed.
        """
        store = self.field_store()
        changed = self._require_transformer().apply_meta_ops(
            store, record.ops.meta, record
        )
        if changed:
            self.commit_store(store)
        return changed

    def make_date_tag_edits(self, record: FileRecord) -> bool:
        """Apply the record's date-tag operations and write on change.

        Returns:
            True if any field changed.
        """
        store = self.field_store()
        changed = self._require_transformer().apply_date_tag_ops(
            store, record.ops.meta, record
        )
        if changed:
            self.commit_store(store)
        return changed

    def _require_transformer(self) -> MetaTransformer:
        if self.transformer is None:
            raise MetaIOError(f"no metadata transformer configured for {self.path}")
        return self.transformer
