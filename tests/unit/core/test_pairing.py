"""Tests for pairing videos with sidecar files."""

from pathlib import Path

import pytest

from vidmeta.exceptions import MatchError
from vidmeta.pairing import FileFilters, meta_keys, normalize_key, pair_files, scan
from vidmeta.records import BatchPair, MetaKind


def _touch(path: Path, content: str = "{}") -> Path:
    path.write_text(content)
    return path


class TestKeys:
    def test_normalize_key(self) -> None:
        assert normalize_key("My  Clip\tName") == "myclipname"

    def test_meta_keys_strip_infix(self) -> None:
        assert meta_keys("Clip One.info.json") == ["clipone", "clipone.info"]

    def test_meta_keys_plain(self) -> None:
        assert meta_keys("clip.nfo") == ["clip"]


class TestFileFilters:
    """Tests for FileFilters.accepts()."""

    def test_empty_accepts_everything(self) -> None:
        assert FileFilters().accepts("anything.mp4")

    @pytest.mark.parametrize(
        ("filters", "name", "expected"),
        [
            (FileFilters(prefix="show"), "Show_01.mp4", True),
            (FileFilters(prefix="show"), "clip.mp4", False),
            (FileFilters(suffix="_01"), "show_01.mp4", True),
            (FileFilters(suffix="mp4"), "show_01.mp4", False),
            (FileFilters(contains="EP"), "show_ep1.mkv", True),
            (FileFilters(omits="trailer"), "show_Trailer.mkv", False),
        ],
    )
    def test_filters(self, filters: FileFilters, name: str, expected: bool) -> None:
        assert filters.accepts(name) is expected


class TestScan:
    def test_skips_backups_and_other_extensions(self, tmp_path: Path) -> None:
        _touch(tmp_path / "a.json")
        _touch(tmp_path / "a.bak.json")
        _touch(tmp_path / "notes.txt")
        (tmp_path / "sub.json").mkdir()

        assert scan(tmp_path, ("json",)) == [tmp_path / "a.json"]


class TestPairFiles:
    """Tests for pair_files()."""

    def test_directory_pair(self, tmp_path: Path, make_video) -> None:
        videos = tmp_path / "videos"
        metas = tmp_path / "meta"
        videos.mkdir()
        metas.mkdir()
        make_video(videos / "Clip One.mp4")
        make_video(videos / "unmatched.mkv")
        _touch(metas / "clip one.info.json")
        _touch(metas / "other.nfo", "<movie/>")

        records = pair_files(BatchPair(video=videos, meta=metas))

        assert len(records) == 1
        assert records[0].original_video_path == videos / "Clip One.mp4"
        assert records[0].meta_path == metas / "clip one.info.json"
        assert records[0].meta_kind is MetaKind.JSON

    def test_same_directory(self, tmp_path: Path, make_video) -> None:
        make_video(tmp_path / "a.mp4")
        make_video(tmp_path / "b.webm")
        _touch(tmp_path / "a.info.json")
        _touch(tmp_path / "b.nfo", "<movie/>")

        records = pair_files(BatchPair(video=tmp_path, meta=tmp_path))

        kinds = {r.original_video_path.name: r.meta_kind for r in records}
        assert kinds == {"a.mp4": MetaKind.JSON, "b.webm": MetaKind.NFO}

    def test_file_pair_ignores_names(self, tmp_path: Path, make_video) -> None:
        video = make_video(tmp_path / "one.mp4")
        meta = _touch(tmp_path / "completely different.json")

        records = pair_files(BatchPair(video=video, meta=meta))

        assert [(r.original_video_path, r.meta_path) for r in records] == [
            (video, meta)
        ]

    def test_filters_apply_to_videos(self, tmp_path: Path, make_video) -> None:
        make_video(tmp_path / "show_01.mp4")
        make_video(tmp_path / "trailer.mp4")
        _touch(tmp_path / "show_01.json")
        _touch(tmp_path / "trailer.json")

        records = pair_files(
            BatchPair(video=tmp_path, meta=tmp_path),
            filters=FileFilters(omits="trailer"),
        )
        assert [r.video_base for r in records] == ["show_01"]

    def test_no_matches_raises(self, tmp_path: Path, make_video) -> None:
        make_video(tmp_path / "a.mp4")
        _touch(tmp_path / "b.json")
        with pytest.raises(MatchError):
            pair_files(BatchPair(video=tmp_path, meta=tmp_path))

    def test_file_pair_with_wrong_extension(self, tmp_path: Path, make_video) -> None:
        video = make_video(tmp_path / "a.mp4")
        meta = _touch(tmp_path / "a.txt")
        with pytest.raises(MatchError):
            pair_files(BatchPair(video=video, meta=meta))
