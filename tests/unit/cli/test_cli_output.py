"""Tests for CLI error and warning output."""

import json
from pathlib import Path

import pytest

from vidmeta.cli.exit_codes import ExitCode
from vidmeta.cli.output import error_exit, print_summary, warning_output
from vidmeta.exceptions import ErrorKind
from vidmeta.orchestrator import BatchSummary, PairFailure
from vidmeta.records import BatchPair


class TestErrorExit:
    """Tests for error_exit function."""

    def test_text(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            error_exit("bad op", ExitCode.CONFIG_ERROR)

        assert exc_info.value.code == 1
        assert capsys.readouterr().err == "Error: bad op\n"

    def test_json(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            error_exit("bad op", ExitCode.CONFIG_ERROR, json_output=True)

        assert exc_info.value.code == 1
        parsed = json.loads(capsys.readouterr().err)
        assert parsed == {
            "status": "failed",
            "error": {"code": "CONFIG_ERROR", "message": "bad op"},
        }

    def test_int_code(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            error_exit("odd", 42, json_output=True)

        assert exc_info.value.code == 42
        assert json.loads(capsys.readouterr().err)["error"]["code"] == "UNKNOWN_ERROR"


class TestWarningOutput:
    def test_text(self, capsys) -> None:
        warning_output("careful")
        assert capsys.readouterr().err == "Warning: careful\n"

    def test_suppressed_in_json_mode(self, capsys) -> None:
        warning_output("careful", json_output=True)
        captured = capsys.readouterr()
        assert captured.err == ""
        assert captured.out == ""


def test_exit_code_values() -> None:
    assert [int(c) for c in ExitCode] == [0, 1, 2]


class TestPrintSummary:
    """Tests for the text-mode batch summary."""

    def test_counts_and_flags(self, capsys) -> None:
        summary = BatchSummary(
            pair_failures=[
                PairFailure(BatchPair(Path("a"), Path("b")), ErrorKind.MATCH, "none")
            ],
            interrupted=True,
            duration_seconds=1.5,
        )

        print_summary(summary)

        out = capsys.readouterr().out
        assert "Processed 0 file(s): 0 ok, 0 failed in 1.5s" in out
        assert "1 batch pair(s) could not be matched" in out
        assert "Batch interrupted" in out

    def test_no_duration_when_zero(self, capsys) -> None:
        print_summary(BatchSummary())
        out = capsys.readouterr().out
        assert out.strip() == "Processed 0 file(s): 0 ok, 0 failed"
