"""Tests for date parsing, formatting and date-tag handling."""

import pytest

from vidmeta.dates import (
    DateFormat,
    DateTagLocation,
    canonical_date,
    collapse_whitespace,
    extract_date_from_metadata,
    format_components,
    is_date_tag,
    is_leap_year,
    make_date_tag,
    parse_components,
    strip_date_tags,
)
from vidmeta.exceptions import DateParseError


class TestDateFormat:
    """Tests for DateFormat codes."""

    def test_from_code_is_case_sensitive(self) -> None:
        """Y means a four-digit year and y a two-digit one."""
        assert DateFormat.from_code("Ymd") is DateFormat.YYYY_MM_DD
        assert DateFormat.from_code("ymd") is DateFormat.YY_MM_DD

    def test_unknown_code_raises(self) -> None:
        with pytest.raises(ValueError, match="invalid date format"):
            DateFormat.from_code("yyyy")

    def test_short_year(self) -> None:
        assert DateFormat.DD_MM_YY.short_year
        assert not DateFormat.MM_DD_YYYY.short_year


class TestParseComponents:
    """Tests for parse_components()."""

    def test_eight_digits_with_hyphens(self) -> None:
        assert parse_components("2024-01-07", DateFormat.YYYY_MM_DD) == (
            "2024",
            "01",
            "07",
        )

    def test_eight_digits_short_year_format(self) -> None:
        """Eight digits keep only the last two year digits for y formats."""
        assert parse_components("20240107", DateFormat.YY_MM_DD) == ("24", "01", "07")

    def test_six_digits(self) -> None:
        assert parse_components("240107", DateFormat.YYYY_MM_DD) == ("24", "01", "07")

    def test_swaps_day_and_month_when_only_swap_is_valid(self) -> None:
        assert parse_components("2024-13-05", DateFormat.YYYY_MM_DD) == (
            "2024",
            "05",
            "13",
        )

    def test_leap_day(self) -> None:
        assert parse_components("2024-02-29", DateFormat.YYYY_MM_DD) == (
            "2024",
            "02",
            "29",
        )

    def test_rejects_feb_29_in_common_year(self) -> None:
        with pytest.raises(DateParseError):
            parse_components("2023-02-29", DateFormat.YYYY_MM_DD)

    def test_rejects_day_31_in_30_day_month(self) -> None:
        with pytest.raises(DateParseError):
            parse_components("2024-04-31", DateFormat.YYYY_MM_DD)

    def test_four_digits_year(self) -> None:
        """A 19xx/20xx prefix followed by a non-month reads as a year."""
        assert parse_components("2024", DateFormat.YYYY_MM_DD) == ("2024", "", "")
        assert parse_components("2024", DateFormat.YY_MM_DD) == ("24", "", "")

    def test_four_digits_day_month(self) -> None:
        assert parse_components("0712", DateFormat.YYYY_MM_DD) == ("", "12", "07")

    def test_four_digits_month_day(self) -> None:
        """When the second pair cannot be a month the first one is."""
        assert parse_components("0713", DateFormat.YYYY_MM_DD) == ("", "07", "13")

    @pytest.mark.parametrize(
        "value", ["123", "12345", "2024017", "2024010799", "abc", "", "20xx"]
    )
    def test_rejects_other_lengths_and_garbage(self, value: str) -> None:
        with pytest.raises(DateParseError):
            parse_components(value, DateFormat.YYYY_MM_DD)


class TestFormatComponents:
    """Tests for format_components()."""

    @pytest.mark.parametrize(
        ("fmt", "expected"),
        [
            (DateFormat.YYYY_MM_DD, "2024-01-07"),
            (DateFormat.YYYY_DD_MM, "2024-07-01"),
            (DateFormat.DD_MM_YYYY, "07-01-2024"),
            (DateFormat.MM_DD_YYYY, "01-07-2024"),
            (DateFormat.MM_DD, "01-07"),
            (DateFormat.DD_MM, "07-01"),
            (DateFormat.SKIP, ""),
        ],
    )
    def test_orders(self, fmt: DateFormat, expected: str) -> None:
        assert format_components("2024", "01", "07", fmt) == expected

    def test_omits_missing_components(self) -> None:
        assert format_components("2024", "", "", DateFormat.YYYY_MM_DD) == "2024"


class TestLeapYear:
    def test_gregorian_rule(self) -> None:
        assert is_leap_year(2000)
        assert is_leap_year(2024)
        assert not is_leap_year(1900)
        assert not is_leap_year(2023)


class TestDateTags:
    """Tests for is_date_tag() and strip_date_tags()."""

    def test_is_date_tag(self) -> None:
        assert is_date_tag("[2024-01-07]")
        assert is_date_tag("[24-01-07]")
        assert not is_date_tag("[2023]")
        assert not is_date_tag("2024-01-07")

    def test_strip_prefix(self) -> None:
        assert strip_date_tags("[24-01-07] show", DateTagLocation.PREFIX) == (
            ["24-01-07"],
            "show",
        )

    def test_strip_suffix(self) -> None:
        assert strip_date_tags("show [2024-01-07]", DateTagLocation.SUFFIX) == (
            ["2024-01-07"],
            "show",
        )

    def test_strip_all_leaves_non_date_brackets(self) -> None:
        removed, residue = strip_date_tags(
            "[2024-01-07] clip [2023]", DateTagLocation.ALL
        )
        assert removed == ["2024-01-07"]
        assert residue == "clip [2023]"

    def test_nothing_to_strip_returns_input_unchanged(self) -> None:
        assert strip_date_tags("  plain  ", DateTagLocation.PREFIX) == ([], "  plain  ")

    def test_prefix_location_ignores_trailing_tag(self) -> None:
        value = "show [2024-01-07]"
        assert strip_date_tags(value, DateTagLocation.PREFIX) == ([], value)


class TestMetadataDates:
    """Tests for picking and formatting a record's date."""

    def test_preferred_key_order(self) -> None:
        meta = {"upload_date": "20240107", "release_date": "2023-05-06T10:00:00Z"}
        assert extract_date_from_metadata(meta) == "2023-05-06"

    def test_skips_short_and_non_string_values(self) -> None:
        meta = {"release_date": 2024, "date": "2024", "upload_date": "20240107"}
        assert extract_date_from_metadata(meta) == "20240107"

    def test_no_date(self) -> None:
        assert extract_date_from_metadata({"title": "x"}) is None

    def test_make_date_tag(self) -> None:
        meta = {"release_date": "2024-01-07"}
        assert make_date_tag(meta, DateFormat.YY_MM_DD) == "[24-01-07]"
        assert make_date_tag(meta, DateFormat.DD_MM_YYYY) == "[07-01-2024]"

    def test_make_date_tag_without_date_or_skip(self) -> None:
        assert make_date_tag({}, DateFormat.YYYY_MM_DD) == ""
        assert make_date_tag({"release_date": "2024-01-07"}, DateFormat.SKIP) == ""

    def test_make_date_tag_unparseable(self) -> None:
        with pytest.raises(DateParseError):
            make_date_tag({"release_date": "garbage!"}, DateFormat.YYYY_MM_DD)

    def test_canonical_date(self) -> None:
        assert canonical_date({"upload_date": "20240107"}) == "2024-01-07"
        assert canonical_date({"upload_date": "nonsense"}) == ""


class TestCollapseWhitespace:
    def test_collapses_spaces_and_tabs_but_keeps_newlines(self) -> None:
        assert collapse_whitespace("  a \t b\nc  ") == "a b\nc"
