"""JSON sidecar adapter.

Reads a top-level JSON object (as written by video downloaders) and writes
it back with 2-space indentation and a trailing newline. Non-string values
are preserved untouched.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from vidmeta.exceptions import FormatError
from vidmeta.records import MetaKind
from vidmeta.sidecar.base import FieldStore, SidecarFile

logger = logging.getLogger(__name__)


def encode_json(data: Mapping[str, Any]) -> bytes:
    """Serialize metadata the way sidecars are written on disk."""
    return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


class JsonFieldStore(FieldStore):
    """Field store backed by a private dict copy."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.data = data

    def __getitem__(self, field: str) -> Any:
        return self.data[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def set(self, field: str, value: str) -> bool:
        if field in self.data and self.data[field] == value:
            return False
        self.data[field] = value
        return True


class JsonSidecar(SidecarFile):
    """Adapter for ``.json`` sidecars."""

    kind = MetaKind.JSON

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._data: dict[str, Any] | None = None

    def decode(self) -> dict[str, Any]:
        """Decode the file into a new dict (cached after the first read).

        Raises:
            FormatError: If the content is not a JSON object.
        """
        if self._data is None:
            return self.refresh()
        return dict(self._data)

    def refresh(self) -> dict[str, Any]:
        """Re-read and decode the file from disk."""
        raw = self.read_bytes()
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FormatError(f"invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise FormatError(
                f"JSON sidecar {self.path} must contain an object at the top level, "
                f"got {type(data).__name__}"
            )
        self._data = data
        logger.debug("Decoded %d fields from %s", len(data), self.path)
        return dict(data)

    def write(self, data: Mapping[str, Any]) -> None:
        """Encode and write ``data``, replacing the file contents."""
        self.write_bytes(encode_json(data))
        self._data = dict(data)

    def field_store(self) -> JsonFieldStore:
        return JsonFieldStore(self.decode())

    def commit_store(self, store: FieldStore) -> None:
        if not isinstance(store, JsonFieldStore):
            raise TypeError(f"expected JsonFieldStore, got {type(store).__name__}")
        self.write(store.data)
