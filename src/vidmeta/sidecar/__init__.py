"""Sidecar metadata file adapters (JSON and NFO)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from vidmeta.records import MetaKind
from vidmeta.sidecar.base import FieldStore, SidecarFile
from vidmeta.sidecar.json_file import JsonFieldStore, JsonSidecar
from vidmeta.sidecar.nfo_file import NfoFieldStore, NfoSidecar

if TYPE_CHECKING:
    from vidmeta.transform.meta import MetaTransformer

_ADAPTERS: dict[MetaKind, type[SidecarFile]] = {
    MetaKind.JSON: JsonSidecar,
    MetaKind.NFO: NfoSidecar,
}


def open_sidecar(
    path: Path,
    kind: MetaKind,
    *,
    backup: bool = False,
    transformer: MetaTransformer | None = None,
) -> SidecarFile:
    """Create the adapter for ``kind`` and open (lock) the file.

    Raises:
        MetaIOError: If the file cannot be opened or is locked.
    """
    adapter = _ADAPTERS[kind](path, backup=backup, transformer=transformer)
    return adapter.open()


__all__ = [
    "FieldStore",
    "JsonFieldStore",
    "JsonSidecar",
    "NfoFieldStore",
    "NfoSidecar",
    "SidecarFile",
    "open_sidecar",
]
