"""Metadata field transformations.

Operations run in a fixed order over a FieldStore:

1. set fields (subject to the overwrite policy)
2. copy-to, then paste-from
3. replace, replace-prefix, replace-suffix, trim-prefix, trim-suffix
4. prefix, then append
5. delete date tags
6. add date tags

Steps 1 to 4 are the "meta edits"; steps 5 and 6 are the "date tag edits"
and run against the values the first pass produced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from vidmeta.dates import (
    DateTagLocation,
    collapse_whitespace,
    make_date_tag,
    strip_date_tags,
)
from vidmeta.exceptions import DateParseError, OverwriteCanceled
from vidmeta.ops.models import OVERRIDE_FIELDS, MetaOps
from vidmeta.ops.templates import expand_templates, has_templates
from vidmeta.prompt import OverwritePrompter

if TYPE_CHECKING:
    from vidmeta.records import FileRecord
    from vidmeta.sidecar.base import FieldStore

logger = logging.getLogger(__name__)


class MetaTransformer:
    """Applies MetaOps to a sidecar's field store."""

    def __init__(self, prompter: OverwritePrompter | None = None) -> None:
        self.prompter = prompter or OverwritePrompter()

    def apply(
        self, store: FieldStore, ops: MetaOps, record: FileRecord | None = None
    ) -> bool:
        """Run every step in order. Returns True if any field changed."""
        changed = self.apply_meta_ops(store, ops, record)
        changed = self.apply_date_tag_ops(store, ops, record) or changed
        return changed

    # -------------------------------------------------------------------------
    # Steps 1-4
    # -------------------------------------------------------------------------

    def apply_meta_ops(
        self, store: FieldStore, ops: MetaOps, record: FileRecord | None = None
    ) -> bool:
        changed = False

        for op in ops.set_fields:
            changed = self._set_field(store, op.field, op.value, record) or changed
        for category, override in ops.set_overrides.items():
            if override.set_value is None:
                continue
            for field in OVERRIDE_FIELDS[category]:
                changed = (
                    self._set_field(store, field, override.set_value, record)
                    or changed
                )

        for op in ops.copy_to:
            changed = self._copy(store, op.field, op.dest) or changed
        for op in ops.paste_from:
            copy = op.as_copy()
            changed = self._copy(store, copy.field, copy.dest) or changed

        for op in ops.replaces:
            changed = self._edit(
                store, op.field, _replace_all(op.find, op.replacement, store)
            ) or changed
        for category, override in ops.set_overrides.items():
            for find, replacement in override.replaces:
                for field in OVERRIDE_FIELDS[category]:
                    changed = self._edit(
                        store, field, _replace_all(find, replacement, store)
                    ) or changed
        for op in ops.replace_prefixes:
            changed = self._edit(
                store, op.field, _replace_prefix(op.prefix, op.replacement, store)
            ) or changed
        for op in ops.replace_suffixes:
            changed = self._edit(
                store, op.field, _replace_suffix(op.suffix, op.replacement, store)
            ) or changed
        for op in ops.trim_prefixes:
            changed = self._edit(
                store, op.field, _replace_prefix(op.prefix, "", store)
            ) or changed
        for op in ops.trim_suffixes:
            changed = self._edit(
                store, op.field, _replace_suffix(op.suffix, "", store)
            ) or changed

        for op in ops.prefixes:
            changed = self._edit(
                store, op.field, lambda v, p=op.value: _expand(p, store) + v
            ) or changed
        for op in ops.appends:
            changed = self._edit(
                store, op.field, lambda v, a=op.value: v + _expand(a, store)
            ) or changed
        for category, override in ops.set_overrides.items():
            for value in override.appends:
                for field in OVERRIDE_FIELDS[category]:
                    changed = self._edit(
                        store, field, lambda v, a=value: v + _expand(a, store)
                    ) or changed

        return changed

    # -------------------------------------------------------------------------
    # Steps 5-6
    # -------------------------------------------------------------------------

    def apply_date_tag_ops(
        self, store: FieldStore, ops: MetaOps, record: FileRecord | None = None
    ) -> bool:
        changed = False

        for field, op in ops.delete_date_tag_ops.items():
            current = store.get(field)
            if not isinstance(current, str):
                continue
            removed, residue = strip_date_tags(current, op.location)
            if removed:
                logger.debug("Removed date tags %s from %s", removed, field)
                changed = store.set(field, residue) or changed

        for field, op in ops.date_tag_ops.items():
            if not store.is_string(field):
                logger.debug("Skipping date tag for missing or non-string %s", field)
                continue
            current = store[field]
            try:
                tag = make_date_tag(store, op.format)
            except DateParseError as e:
                logger.warning("Cannot add date tag to %s: %s", field, e.message)
                continue
            if not tag:
                logger.debug("No date available for %s date tag", field)
                continue
            if tag in current:
                continue
            if op.location is DateTagLocation.PREFIX:
                tagged = f"{tag} {current}"
            else:
                tagged = f"{current} {tag}"
            changed = store.set(field, collapse_whitespace(tagged)) or changed

        return changed

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _set_field(
        self, store: FieldStore, field: str, raw: str, record: FileRecord | None
    ) -> bool:
        value = collapse_whitespace(_expand(raw, store))
        if store.is_additive(field) or field not in store:
            return store.set(field, value)

        current = store[field]
        if not isinstance(current, str):
            logger.debug("Not setting non-string field %s", field)
            return False
        if current == value:
            return False

        try:
            overwrite = self.prompter.should_overwrite(
                field,
                current,
                value,
                record_overwrite=record.overwrite if record else False,
                label=record.original_video_path.name if record else "",
            )
        except OverwriteCanceled as e:
            logger.info("Field %s unchanged: %s", field, e.message)
            return False
        if not overwrite:
            logger.debug("Preserving existing value of %s", field)
            return False
        return store.set(field, value)

    def _copy(self, store: FieldStore, origin: str, dest: str) -> bool:
        if not store.is_string(origin):
            logger.debug("Cannot copy missing or non-string field %s", origin)
            return False
        return store.set(dest, store[origin])

    def _edit(self, store: FieldStore, field: str, fn: Callable[[str], str]) -> bool:
        current = store.get(field)
        if not isinstance(current, str):
            return False
        edited = fn(current)
        if edited == current:
            return False
        updated = collapse_whitespace(edited)
        return store.set(field, updated)


def _expand(value: str, store: FieldStore) -> str:
    """Expand ``{meta:field}`` tags against the store's current values."""
    if not has_templates(value):
        return value
    expanded = expand_templates(value, store)
    logger.debug("Expanded %r to %r", value, expanded)
    return expanded


def _replace_all(
    find: str, replacement: str, store: FieldStore
) -> Callable[[str], str]:
    return lambda v: v.replace(find, _expand(replacement, store))


def _replace_prefix(
    prefix: str, replacement: str, store: FieldStore
) -> Callable[[str], str]:
    def fn(v: str) -> str:
        if prefix and v.startswith(prefix):
            return _expand(replacement, store) + v[len(prefix) :]
        return v

    return fn


def _replace_suffix(
    suffix: str, replacement: str, store: FieldStore
) -> Callable[[str], str]:
    def fn(v: str) -> str:
        if suffix and v.endswith(suffix):
            return v[: -len(suffix)] + _expand(replacement, store)
        return v

    return fn
