"""Filename rewriting.

Stems are transformed in a fixed order:

1. set (replaces the whole stem)
2. replace, replace-prefix, replace-suffix
3. prefix, append
4. delete date tag
5. add date tag at the op's location
6. naming style (``_`` to space or space to ``_``)
7. contraction restoration and lone-``s`` repair
8. prepend the metadata-prefix tag and date tag if not already present

The result is stripped of invalid filename characters, whitespace
collapsed and trimmed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from vidmeta.dates import (
    DateTagLocation,
    canonical_date,
    collapse_whitespace,
    strip_date_tags,
)
from vidmeta.ops.models import FilenameOps, NamingStyle
from vidmeta.ops.templates import expand_templates
from vidmeta.pairing import SIDECAR_INFIXES
from vidmeta.records import ComputedTags
from vidmeta.transform.contractions import repair_lone_s, restore_contractions
from vidmeta.transform.tags import (
    build_date_tag,
    build_meta_prefix_tag,
    strip_invalid_chars,
)

logger = logging.getLogger(__name__)


def compute_tags(
    stem: str,
    meta: Mapping[str, Any],
    ops: FilenameOps,
    meta_prefix_fields: Sequence[str] = (),
) -> ComputedTags:
    """Derive the date tag and metadata-prefix tag for a stem."""
    date_tag = build_date_tag(meta, ops.date_tag.format) if ops.date_tag else ""
    return ComputedTags(
        date_tag=date_tag,
        filename_meta_prefix=build_meta_prefix_tag(meta, meta_prefix_fields, stem),
        formatted_date=canonical_date(meta),
    )


def apply_naming_style(stem: str, style: NamingStyle) -> str:
    """Apply the whole-stem naming normalization."""
    if style is NamingStyle.SKIP:
        return stem
    if style is NamingStyle.SPACES:
        stem = stem.replace("_", " ")
    elif style is NamingStyle.UNDERSCORES:
        stem = stem.replace(" ", "_")
    return repair_lone_s(restore_contractions(stem))


def transform_stem(
    stem: str,
    meta: Mapping[str, Any],
    ops: FilenameOps,
    computed: ComputedTags,
    style: NamingStyle,
) -> str:
    """Return the new stem for a video.

    Args:
        stem: Current stem (filename without extension).
        meta: Metadata after all metadata operations ran.
        ops: Filename operations.
        computed: Tags derived from ``meta``.
        style: Naming style.

    Returns:
        The new stem. If every character was removed the original stem is
        returned instead.
    """
    name = stem

    if ops.set_value is not None:
        name = expand_templates(ops.set_value, meta)

    for r in ops.replaces:
        name = name.replace(r.find, expand_templates(r.replacement, meta))
    for r in ops.replace_prefixes:
        if r.find and name.startswith(r.find):
            name = expand_templates(r.replacement, meta) + name[len(r.find) :]
    for r in ops.replace_suffixes:
        if r.find and name.endswith(r.find):
            name = name[: -len(r.find)] + expand_templates(r.replacement, meta)

    for value in ops.prefixes:
        name = expand_templates(value, meta) + name
    for value in ops.appends:
        name = name + expand_templates(value, meta)

    if ops.delete_date_tag is not None:
        removed, residue = strip_date_tags(name, ops.delete_date_tag.location)
        if removed:
            logger.debug("Removed date tags %s from filename", removed)
            name = residue

    if ops.date_tag is not None and computed.date_tag:
        if computed.date_tag not in name:
            if ops.date_tag.location is DateTagLocation.SUFFIX:
                name = f"{name} {computed.date_tag}"
            else:
                name = f"{computed.date_tag} {name}"

    name = apply_naming_style(name, style)

    for tag in (computed.date_tag, computed.filename_meta_prefix):
        if tag and tag not in name:
            name = f"{tag} {name}"

    name = collapse_whitespace(strip_invalid_chars(name))
    if not name:
        logger.warning("Filename operations emptied %r, keeping it", stem)
        return stem
    return name


def new_meta_name(meta_name: str, video_stem: str, new_stem: str) -> str:
    """Rename a sidecar to follow its video, keeping any infix.

    ``a_b_c.info.json`` for video ``a_b_c`` and new stem ``a b c`` becomes
    ``a b c.info.json``.
    """
    if meta_name.startswith(video_stem):
        return new_stem + meta_name[len(video_stem) :]
    lower = meta_name.lower()
    for infix in SIDECAR_INFIXES:
        if lower.endswith(infix):
            return new_stem + meta_name[-len(infix) :]
    return new_stem + Path(meta_name).suffix


class FilenameTransformer:
    """Computes new video and sidecar names for records."""

    def __init__(
        self,
        style: NamingStyle = NamingStyle.SKIP,
        meta_prefix_fields: Sequence[str] = (),
    ) -> None:
        self.style = style
        self.meta_prefix_fields = tuple(meta_prefix_fields)

    def compute_tags(
        self, stem: str, meta: Mapping[str, Any], ops: FilenameOps
    ) -> ComputedTags:
        return compute_tags(stem, meta, ops, self.meta_prefix_fields)

    def transform(
        self,
        stem: str,
        meta: Mapping[str, Any],
        ops: FilenameOps,
        computed: ComputedTags | None = None,
    ) -> str:
        if computed is None:
            computed = self.compute_tags(stem, meta, ops)
        return transform_stem(stem, meta, ops, computed, self.style)

    def is_noop(self, ops: FilenameOps) -> bool:
        """True when no filename work is configured at all."""
        return ops.is_empty and self.style is NamingStyle.SKIP and not (
            self.meta_prefix_fields
        )
