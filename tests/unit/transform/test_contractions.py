"""Tests for contraction restoration and lone-s repair."""

import pytest

from vidmeta.transform.contractions import repair_lone_s, restore_contractions


class TestRestoreContractions:
    """Tests for restore_contractions()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("don t stop", "don't stop"),
            ("don_t stop", "don't stop"),
            ("DON_T STOP", "DON'T STOP"),
            ("i m here", "i'm here"),
            ("they re here", "they're here"),
            ("we ve won", "we've won"),
            ("you ll see", "you'll see"),
            ("let s go", "let's go"),
            ("can t", "can't"),
        ],
    )
    def test_restores(self, value: str, expected: str) -> None:
        assert restore_contractions(value) == expected

    @pytest.mark.parametrize(
        "value",
        ["donut stop", "candy t", "xdon t", "don tea", "plain words"],
    )
    def test_leaves_other_words(self, value: str) -> None:
        assert restore_contractions(value) == value


class TestRepairLoneS:
    """Tests for repair_lone_s()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("dog s bone", "dogs bone"),
            ("dog_s bone", "dogs bone"),
            ("the dog s", "the dogs"),
            ("dog s-bone", "dogs-bone"),
            ("cat s (2024)", "cats (2024)"),
        ],
    )
    def test_repairs(self, value: str, expected: str) -> None:
        assert repair_lone_s(value) == expected

    def test_leaves_words_starting_with_s(self) -> None:
        assert repair_lone_s("dog sits") == "dog sits"
