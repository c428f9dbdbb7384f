"""Tests for sidecar locking, backups and handle lifecycle."""

import json
from pathlib import Path

import pytest

from vidmeta.exceptions import MetaIOError, SidecarLockError
from vidmeta.records import MetaKind
from vidmeta.sidecar import JsonSidecar, open_sidecar


class TestLocking:
    """Tests for the exclusive lock taken on open."""

    def test_second_open_is_rejected(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {"title": "T"})
        with open_sidecar(path, MetaKind.JSON):
            with pytest.raises(SidecarLockError, match="another operation"):
                open_sidecar(path, MetaKind.JSON)

    def test_lock_released_on_close(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {"title": "T"})
        open_sidecar(path, MetaKind.JSON).close()
        sidecar = open_sidecar(path, MetaKind.JSON)
        sidecar.close()
        sidecar.close()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetaIOError, match="failed to open"):
            open_sidecar(tmp_path / "missing.json", MetaKind.JSON)

    def test_read_when_closed(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {})
        sidecar = JsonSidecar(path)
        with pytest.raises(MetaIOError, match="not open"):
            sidecar.read_bytes()


class TestBackupOnFirstWrite:
    """Tests for the optional backup taken before the first write."""

    def test_backup_holds_original_content(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {"title": "Original"})
        original = path.read_bytes()

        with open_sidecar(path, MetaKind.JSON, backup=True) as sidecar:
            sidecar.write({"title": "First"})
            sidecar.write({"title": "Second"})
            backup_path = sidecar.backup_path

        assert backup_path == tmp_path / "clip.bak.json"
        assert backup_path.read_bytes() == original
        assert json.loads(path.read_text()) == {"title": "Second"}

    def test_no_backup_by_default(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {"title": "Original"})
        with open_sidecar(path, MetaKind.JSON) as sidecar:
            sidecar.write({"title": "New"})
            assert sidecar.backup_path is None
        assert not (tmp_path / "clip.bak.json").exists()

    def test_no_backup_without_write(self, tmp_path: Path, write_json) -> None:
        path = write_json(tmp_path / "clip.json", {"title": "Original"})
        with open_sidecar(path, MetaKind.JSON, backup=True) as sidecar:
            sidecar.decode()
        assert not (tmp_path / "clip.bak.json").exists()


class TestEditsWithoutTransformer:
    def test_make_meta_edits_requires_transformer(
        self, tmp_path: Path, write_json
    ) -> None:
        from vidmeta.records import FileRecord

        path = write_json(tmp_path / "clip.json", {})
        record = FileRecord(
            original_video_path=tmp_path / "clip.mp4",
            meta_path=path,
            meta_kind=MetaKind.JSON,
        )
        with open_sidecar(path, MetaKind.JSON) as sidecar:
            with pytest.raises(MetaIOError, match="no metadata transformer"):
                sidecar.make_meta_edits(record)
