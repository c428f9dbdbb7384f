"""Tests for the check-ops and parse-date commands."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from vidmeta.cli import main


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch) -> None:
    monkeypatch.setattr("vidmeta.cli.configure_logging", lambda config: None)


class TestCheckOps:
    """Tests for vidmeta check-ops."""

    def test_describes_operations(self) -> None:
        result = CliRunner().invoke(
            main,
            ["check-ops", "-m", "title:set:New", "-f", "date-tag:prefix:ymd"],
        )

        assert result.exit_code == 0
        assert "Metadata operations:\n  set title = 'New'" in result.output
        assert "Filename operations:\n  add date tag (prefix, ymd)" in result.output

    def test_no_operations(self) -> None:
        result = CliRunner().invoke(main, ["check-ops"])

        assert result.exit_code == 0
        assert result.output.count("(none)") == 2

    def test_json(self) -> None:
        result = CliRunner().invoke(
            main, ["check-ops", "-f", "append: (HD)", "--json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "meta_ops": [],
            "filename_ops": ["append ' (HD)'"],
        }

    def test_ops_file_merged_before_cli(self, tmp_path: Path) -> None:
        preset = tmp_path / "preset.yaml"
        preset.write_text("filename_ops:\n  - 'append:A'\n")

        result = CliRunner().invoke(
            main,
            ["check-ops", "--ops-file", str(preset), "-f", "append:B", "--json"],
        )

        assert json.loads(result.output)["filename_ops"] == [
            "append 'A'",
            "append 'B'",
        ]

    def test_invalid_operation(self) -> None:
        result = CliRunner().invoke(main, ["check-ops", "-f", "set:a", "-f", "set:b"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "only one" in result.output


class TestParseDate:
    """Tests for vidmeta parse-date."""

    @pytest.mark.parametrize(
        ("value", "fmt", "expected"),
        [
            ("20240107", "Ymd", "2024-01-07"),
            ("20240107", "ymd", "24-01-07"),
            ("2024-01-07", "dmY", "07-01-2024"),
            ("20240107", "md", "01-07"),
        ],
    )
    def test_formats(self, value: str, fmt: str, expected: str) -> None:
        result = CliRunner().invoke(main, ["parse-date", value, "--format", fmt])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == expected

    def test_default_format(self) -> None:
        result = CliRunner().invoke(main, ["parse-date", "20240107"])
        assert result.output.strip() == "2024-01-07"

    def test_unknown_format(self) -> None:
        result = CliRunner().invoke(
            main, ["parse-date", "20240107", "--format", "YMD"]
        )

        assert result.exit_code == 1
        assert "invalid date format" in result.output

    def test_unparseable_date(self) -> None:
        result = CliRunner().invoke(main, ["parse-date", "2024-13-45"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestMainGroup:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("vidmeta, version ")

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])

        for name in ("run", "check-ops", "parse-date"):
            assert name in result.output
