"""Filename tag derivation: date tags and metadata-prefix tags."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from vidmeta.dates import DateFormat, collapse_whitespace, make_date_tag
from vidmeta.exceptions import DateParseError

logger = logging.getLogger(__name__)

INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def strip_invalid_chars(value: str) -> str:
    """Remove characters that are not allowed in filenames."""
    return INVALID_CHARS_RE.sub("", value)


def build_date_tag(meta: Mapping[str, Any], fmt: DateFormat) -> str:
    """Bracketed date tag for a filename, or "" when no usable date exists.

    Unparseable dates are logged and produce no tag.
    """
    try:
        tag = make_date_tag(meta, fmt)
    except DateParseError as e:
        logger.warning("Skipping filename date tag: %s", e.message)
        return ""
    return strip_invalid_chars(tag)


def build_meta_prefix_tag(
    meta: Mapping[str, Any], fields: Iterable[str], stem: str = ""
) -> str:
    """Join the string values of ``fields`` with ``_`` into ``[...]``.

    Returns "" when no field has a value or when the tag already occurs in
    ``stem``.
    """
    values = [
        collapse_whitespace(v)
        for v in (meta.get(f) for f in fields)
        if isinstance(v, str) and v.strip()
    ]
    tag = strip_invalid_chars(f"[{'_'.join(values)}]")
    if tag == "[]":
        return ""
    if stem and tag in stem:
        logger.debug("Metadata prefix tag %s already in %r", tag, stem)
        return ""
    return tag
