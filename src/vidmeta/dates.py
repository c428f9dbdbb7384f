"""Date parsing, validation, formatting and date-tag utilities.

Dates arrive from sidecar metadata in a handful of loose shapes
(``2024-01-07``, ``20240107``, ``240107``, ``0107``, ``2024``) and leave as
hyphen-joined strings in a user-selected component order. Bracketed forms
such as ``[2024-01-07]`` are "date tags" and may be added to or stripped
from field values and filenames.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from vidmeta.exceptions import DateParseError

logger = logging.getLogger(__name__)


class DateFormat(Enum):
    """Component order for formatted dates. ``Y`` is yyyy, ``y`` is yy."""

    YYYY_MM_DD = "Ymd"
    YY_MM_DD = "ymd"
    YYYY_DD_MM = "Ydm"
    YY_DD_MM = "ydm"
    DD_MM_YYYY = "dmY"
    DD_MM_YY = "dmy"
    MM_DD_YYYY = "mdY"
    MM_DD_YY = "mdy"
    MM_DD = "md"
    DD_MM = "dm"
    SKIP = "skip"

    @property
    def short_year(self) -> bool:
        """True when the format uses a two-digit year."""
        return self.value in ("ymd", "ydm", "dmy", "mdy")

    @classmethod
    def from_code(cls, code: str) -> DateFormat:
        """Look up a format by its user-facing code (case-sensitive).

        Raises:
            ValueError: If the code is not one of the known formats.
        """
        for member in cls:
            if member.value == code:
                return member
        valid = ", ".join(m.value for m in cls if m is not cls.SKIP)
        raise ValueError(f"invalid date format {code!r}, expected one of: {valid}")


class DateTagLocation(Enum):
    """Where a date tag is added to or removed from."""

    PREFIX = "prefix"
    SUFFIX = "suffix"
    ALL = "all"


# Inner text of a valid date tag, e.g. "2024-01-07" or "24-01-07"
DATE_TAG_RE = re.compile(r"^\d{2,4}-\d{2}-\d{2}$")
BRACKETED_DATE_TAG_RE = re.compile(r"\[\d{2,4}-\d{2}-\d{2}\]")

# Order matters: the first present key wins.
PREFERRED_DATE_KEYS: tuple[str, ...] = (
    "release_date",
    "releasedate",
    "released_on",
    "originally_available_at",
    "originally_available",
    "originallyavailable",
    "date",
    "upload_date",
    "uploaddate",
    "uploaded_on",
    "creation_time",
    "created_at",
)

_MONTHS_30 = frozenset({4, 6, 9, 11})
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")


def collapse_whitespace(value: str) -> str:
    """Collapse runs of spaces and tabs to single spaces and trim.

    Line breaks are kept so multi-line descriptions survive.
    """
    return _HORIZONTAL_SPACE.sub(" ", value).strip()


def parse_components(value: str, fmt: DateFormat) -> tuple[str, str, str]:
    """Split a loose date string into (year, month, day) strings.

    Hyphens are removed and whitespace trimmed before positional splitting.
    Absent components are returned as empty strings.

    Args:
        value: Date string (8, 6 or 4 significant digits).
        fmt: Target format; decides whether 8-digit input yields a 2- or
            4-digit year.

    Returns:
        Validated (year, month, day), with day and month swapped if only the
        swapped order is a real date.

    Raises:
        DateParseError: If the string cannot be resolved.
    """
    digits = value.replace("-", "").strip()
    year, month, day = _split_positional(digits, fmt)
    return _validate_components(year, month, day)


def _split_positional(d: str, fmt: DateFormat) -> tuple[str, str, str]:
    if len(d) == 8:
        year = d[2:4] if fmt.short_year else d[:4]
        return year, d[4:6], d[6:8]

    if len(d) == 6:
        return d[:2], d[2:4], d[4:6]

    if len(d) == 4:
        if not d.isdigit():
            raise DateParseError(f"invalid date string {d!r}")
        i, j = int(d[:2]), int(d[2:4])
        year = d[2:4] if fmt.short_year else d
        if i in (19, 20) and j > 12:
            logger.debug("Guessing date string %r as year", d)
            return year, "", ""
        day_month, month_day = _maybe_day_month(i, j)
        if day_month:
            logger.debug("Guessing date string %r as day-month", d)
            return "", d[2:4], d[:2]
        if month_day:
            logger.debug("Guessing date string %r as month-day", d)
            return "", d[:2], d[2:4]
        if i in (19, 20):
            logger.debug("Guessing date string %r as year after day-month check", d)
            return year, "", ""

    raise DateParseError(f"failed to parse year, month, and day from {d!r}")


def _maybe_day_month(i: int, j: int) -> tuple[bool, bool]:
    """Guess whether a 4-digit pair reads as DD-MM or MM-DD."""
    if i == 0 or i >= 31 or j == 0 or j >= 31:
        return False, False
    if j <= 12:
        return True, False
    if i <= 12:
        return False, True
    return False, False


def _validate_components(year: str, month: str, day: str) -> tuple[str, str, str]:
    if _is_valid_date(year, month, day):
        return year, month, day
    if _is_valid_date(year, day, month):
        return year, day, month
    raise DateParseError(
        f"invalid date components: year={year}, month={month}, day={day}"
    )


def _is_valid_date(year: str, month: str, day: str) -> bool:
    if year and not year.isdigit():
        return False
    if not month and not day:
        return bool(year)
    if not (month.isdigit() and day.isdigit()):
        return False
    m, d = int(month), int(day)
    if not 1 <= m <= 12 or not 1 <= d <= 31:
        return False
    if m in _MONTHS_30:
        return d <= 30
    if m == 2:
        # Missing year: accept Feb 29
        return d <= (29 if not year or is_leap_year(int(year)) else 28)
    return True


def is_leap_year(year: int) -> bool:
    """Gregorian leap year rule."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def format_components(year: str, month: str, day: str, fmt: DateFormat) -> str:
    """Join the non-empty components with hyphens in ``fmt`` order."""
    if fmt in (DateFormat.YYYY_MM_DD, DateFormat.YY_MM_DD):
        parts = (year, month, day)
    elif fmt in (DateFormat.YYYY_DD_MM, DateFormat.YY_DD_MM):
        parts = (year, day, month)
    elif fmt in (DateFormat.DD_MM_YYYY, DateFormat.DD_MM_YY):
        parts = (day, month, year)
    elif fmt in (DateFormat.MM_DD_YYYY, DateFormat.MM_DD_YY):
        parts = (month, day, year)
    elif fmt is DateFormat.MM_DD:
        parts = (month, day)
    elif fmt is DateFormat.DD_MM:
        parts = (day, month)
    else:
        return ""
    return "-".join(p for p in parts if p)


def is_date_tag(token: str) -> bool:
    """Check whether ``token`` is a bracketed date tag like ``[24-01-07]``."""
    return (
        len(token) > 2
        and token.startswith("[")
        and token.endswith("]")
        and DATE_TAG_RE.match(token[1:-1]) is not None
    )


def strip_date_tags(value: str, loc: DateTagLocation) -> tuple[list[str], str]:
    """Remove bracketed date tags from ``value``.

    Only tags whose inner text is a valid date (``yyyy-mm-dd`` or
    ``yy-mm-dd``) are removed; other bracketed tokens are left in place.

    Args:
        value: String to clean.
        loc: Remove the leading tag, the trailing tag, or every tag.

    Returns:
        Tuple of (removed inner date strings, residue). If nothing was
        removed the residue is the unmodified input.
    """
    trimmed = value.strip()

    if loc is DateTagLocation.PREFIX:
        close = trimmed.find("]")
        if trimmed.startswith("[") and close > 0:
            inner = trimmed[1:close]
            if DATE_TAG_RE.match(inner):
                return [inner], collapse_whitespace(trimmed[close + 1 :])

    elif loc is DateTagLocation.SUFFIX:
        opening = trimmed.rfind("[")
        if trimmed.endswith("]") and opening >= 0:
            inner = trimmed[opening + 1 : -1]
            if DATE_TAG_RE.match(inner):
                return [inner], collapse_whitespace(trimmed[:opening])

    elif loc is DateTagLocation.ALL:
        tags = BRACKETED_DATE_TAG_RE.findall(trimmed)
        if tags:
            cleaned = BRACKETED_DATE_TAG_RE.sub("", trimmed)
            return [t[1:-1] for t in tags], collapse_whitespace(cleaned)

    return [], value


def extract_date_from_metadata(meta: Mapping[str, Any]) -> str | None:
    """Find the best date string in a metadata mapping.

    Walks PREFERRED_DATE_KEYS in order and returns the first string value
    longer than four characters, truncated at any ``T`` time separator.
    """
    for key in PREFERRED_DATE_KEYS:
        value = meta.get(key)
        if isinstance(value, str) and len(value) > 4:
            date_part, _, _ = value.partition("T")
            logger.debug("Using %r from field %s as record date", date_part, key)
            return date_part
    return None


def make_date_tag(meta: Mapping[str, Any], fmt: DateFormat) -> str:
    """Build a ``[formatted]`` tag from the metadata's preferred date.

    Returns an empty string when the format is SKIP or no date is present.

    Raises:
        DateParseError: If a date is present but cannot be parsed.
    """
    if fmt is DateFormat.SKIP:
        return ""
    raw = extract_date_from_metadata(meta)
    if raw is None:
        return ""
    formatted = format_components(*parse_components(raw, fmt), fmt)
    return f"[{formatted}]" if formatted else ""


def canonical_date(meta: Mapping[str, Any]) -> str:
    """Return the metadata date as ``YYYY-MM-DD``, or "" if unavailable."""
    raw = extract_date_from_metadata(meta)
    if raw is None:
        return ""
    try:
        year, month, day = parse_components(raw, DateFormat.YYYY_MM_DD)
    except DateParseError as e:
        logger.debug("No canonical date: %s", e)
        return ""
    return format_components(year, month, day, DateFormat.YYYY_MM_DD)
