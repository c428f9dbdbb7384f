"""Tests for EnvReader."""

from pathlib import Path

import pytest

from vidmeta.config import EnvReader


class TestEnvReader:
    """Tests for typed environment access."""

    def test_unset_is_none(self, empty_env: EnvReader) -> None:
        assert empty_env.get_str("X") is None
        assert empty_env.get_int("X") is None
        assert empty_env.get_float("X") is None
        assert empty_env.get_bool("X") is None
        assert empty_env.get_path("X") is None
        assert empty_env.get_list("X") is None

    def test_int_and_float(self) -> None:
        env = EnvReader(env={"I": " 4 ", "F": "2.5", "BAD": "four"})
        assert env.get_int("I") == 4
        assert env.get_float("F") == 2.5
        assert env.get_int("BAD") is None
        assert env.get_float("BAD") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1", True),
            ("TRUE", True),
            ("yes", True),
            ("on", True),
            ("0", False),
            ("false", False),
            ("off", False),
            ("", False),
            ("maybe", None),
        ],
    )
    def test_bool(self, value: str, expected: bool | None) -> None:
        assert EnvReader(env={"B": value}).get_bool("B") is expected

    def test_path_expands_user(self) -> None:
        env = EnvReader(env={"P": "~/videos", "EMPTY": ""})
        assert env.get_path("P") == Path("~/videos").expanduser()
        assert env.get_path("EMPTY") is None

    def test_list(self) -> None:
        env = EnvReader(env={"L": "mp4, mkv,,webm "})
        assert env.get_list("L") == ["mp4", "mkv", "webm"]

    def test_reads_os_environ_by_default(self, monkeypatch) -> None:
        monkeypatch.setenv("VIDMETA_TEST_VALUE", "7")
        assert EnvReader().get_int("VIDMETA_TEST_VALUE") == 7
