"""Operation DSL parsing.

Metadata operations are written ``field:op:value`` or ``field:op:a:b``;
filename operations drop the ``field`` head. The separator is ``:``. A
backslash escapes it (``\\:``), and colons inside ``{meta:...}`` template
braces never split.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from vidmeta.dates import DateFormat, DateTagLocation
from vidmeta.exceptions import ConfigError
from vidmeta.ops.models import (
    AppendOp,
    CopyToOp,
    DateTagOp,
    FilenameOps,
    FilenameReplace,
    MetaOps,
    OverrideCategory,
    OverrideOps,
    PasteFromOp,
    PrefixOp,
    ReplaceOp,
    ReplacePrefixOp,
    ReplaceSuffixOp,
    SetField,
    TrimPrefixOp,
    TrimSuffixOp,
)

logger = logging.getLogger(__name__)

SEPARATOR = ":"

_META_FORMAT_HINT = (
    "expected 'field:op:value' or 'field:op:arg1:arg2', "
    "e.g. 'title:prefix:[DOG CLIPS] ' or 'title:date-tag:prefix:ymd'"
)
_FILENAME_FORMAT_HINT = (
    "expected 'op:value' or 'op:arg1:arg2', "
    "e.g. 'prefix:[COOL VIDEOS] ' or 'date-tag:prefix:ymd'"
)

# Accepted spellings mapped to canonical operation names.
_OP_ALIASES: dict[str, str] = {
    "copy": "copy-to",
    "paste": "paste-from",
    "trim-pfx": "trim-prefix",
    "trim-sfx": "trim-suffix",
    "date-tag-delete": "delete-date-tag",
}

# Field names that address an override category instead of a single field.
_OVERRIDE_FIELD_NAMES: dict[str, OverrideCategory] = {
    "all-credits": OverrideCategory.CREDITS,
    "credits-all": OverrideCategory.CREDITS,
}

META_THREE_PART_OPS = frozenset(
    {"set", "append", "prefix", "trim-suffix", "trim-prefix", "copy-to", "paste-from"}
)
META_FOUR_PART_OPS = frozenset(
    {"replace", "replace-prefix", "replace-suffix", "date-tag", "delete-date-tag"}
)
FILENAME_TWO_PART_OPS = frozenset({"set", "append", "prefix"})
FILENAME_THREE_PART_OPS = frozenset(
    {"replace", "replace-prefix", "replace-suffix", "date-tag", "delete-date-tag"}
)


def _new_override_bucket() -> dict[str, list]:
    return {"set": [], "append": [], "replace": []}


def escaped_split(value: str, sep: str = SEPARATOR) -> list[str]:
    """Split on ``sep`` honoring backslash escapes and template braces.

    Args:
        value: Raw operation string.
        sep: Single-character separator.

    Returns:
        List of parts with escapes removed.
    """
    parts: list[str] = []
    buf: list[str] = []
    depth = 0
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value) and value[i + 1] == sep:
            buf.append(sep)
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


def normalize_op_name(name: str) -> str:
    """Lower-case an operation name and resolve aliases."""
    canonical = name.strip().lower().replace("_", "-")
    return _OP_ALIASES.get(canonical, canonical)


def parse_date_format(code: str) -> DateFormat:
    """Parse a date format code such as ``ymd`` or ``Ymd``.

    Raises:
        ConfigError: If the code is unknown or is ``skip``.
    """
    try:
        fmt = DateFormat.from_code(code.strip())
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if fmt is DateFormat.SKIP:
        raise ConfigError("date format 'skip' is not valid in an operation")
    return fmt


def parse_location(value: str, allow_all: bool) -> DateTagLocation:
    """Parse a date-tag location.

    Raises:
        ConfigError: If the location is unknown, or ``all`` where not allowed.
    """
    try:
        loc = DateTagLocation(value.strip().lower())
    except ValueError as e:
        allowed = "prefix, suffix, or all" if allow_all else "prefix or suffix"
        raise ConfigError(
            f"date tag location must be {allowed}, got {value!r}"
        ) from e
    if loc is DateTagLocation.ALL and not allow_all:
        raise ConfigError("date tag location 'all' is only valid for delete-date-tag")
    return loc


def parse_meta_ops(entries: Iterable[str]) -> MetaOps:
    """Parse metadata operation strings into a MetaOps model.

    Args:
        entries: Operation strings like ``title:set:New``.

    Returns:
        Parsed, immutable MetaOps.

    Raises:
        ConfigError: On any malformed or unknown operation.
    """
    set_fields: list[SetField] = []
    appends: list[AppendOp] = []
    prefixes: list[PrefixOp] = []
    trim_suffixes: list[TrimSuffixOp] = []
    trim_prefixes: list[TrimPrefixOp] = []
    replaces: list[ReplaceOp] = []
    replace_suffixes: list[ReplaceSuffixOp] = []
    replace_prefixes: list[ReplacePrefixOp] = []
    copy_to: list[CopyToOp] = []
    paste_from: list[PasteFromOp] = []
    date_tags: dict[str, DateTagOp] = {}
    delete_date_tags: dict[str, DateTagOp] = {}
    overrides: dict[OverrideCategory, dict[str, list]] = {}

    for entry in entries:
        parts = escaped_split(entry)
        if len(parts) not in (3, 4):
            raise ConfigError(f"invalid meta operation {entry!r}: {_META_FORMAT_HINT}")

        field, op = parts[0].strip(), normalize_op_name(parts[1])
        if not field:
            raise ConfigError(f"invalid meta operation {entry!r}: empty field name")

        if len(parts) == 3:
            if op not in META_THREE_PART_OPS:
                raise ConfigError(
                    f"invalid meta operation {entry!r}: unknown operation "
                    f"{parts[1]!r} for three-part form"
                )
            value = parts[2]
            category = _OVERRIDE_FIELD_NAMES.get(field.lower())
            if category is not None and op in ("set", "append"):
                bucket = overrides.setdefault(category, _new_override_bucket())
                bucket[op].append(value)
            elif op == "set":
                set_fields.append(SetField(field, value))
            elif op == "append":
                appends.append(AppendOp(field, value))
            elif op == "prefix":
                prefixes.append(PrefixOp(field, value))
            elif op == "trim-suffix":
                trim_suffixes.append(TrimSuffixOp(field, value))
            elif op == "trim-prefix":
                trim_prefixes.append(TrimPrefixOp(field, value))
            elif op == "copy-to":
                copy_to.append(CopyToOp(field, value.strip()))
            else:
                paste_from.append(PasteFromOp(field, value.strip()))
        else:
            if op not in META_FOUR_PART_OPS:
                raise ConfigError(
                    f"invalid meta operation {entry!r}: unknown operation "
                    f"{parts[1]!r} for four-part form"
                )
            first, second = parts[2], parts[3]
            category = _OVERRIDE_FIELD_NAMES.get(field.lower())
            if category is not None and op == "replace":
                bucket = overrides.setdefault(category, _new_override_bucket())
                bucket["replace"].append((first, second))
            elif op == "replace":
                replaces.append(ReplaceOp(field, first, second))
            elif op == "replace-prefix":
                replace_prefixes.append(ReplacePrefixOp(field, first, second))
            elif op == "replace-suffix":
                replace_suffixes.append(ReplaceSuffixOp(field, first, second))
            elif op == "date-tag":
                date_tags[field] = DateTagOp(
                    parse_location(first, allow_all=False), parse_date_format(second)
                )
            else:
                delete_date_tags[field] = DateTagOp(
                    parse_location(first, allow_all=True), parse_date_format(second)
                )

        logger.debug("Added meta operation %r", entry)

    set_overrides = {
        category: OverrideOps(
            set_value=bucket["set"][-1] if bucket["set"] else None,
            appends=tuple(bucket["append"]),
            replaces=tuple(bucket["replace"]),
        )
        for category, bucket in overrides.items()
    }

    return MetaOps(
        set_fields=tuple(set_fields),
        appends=tuple(appends),
        prefixes=tuple(prefixes),
        trim_suffixes=tuple(trim_suffixes),
        trim_prefixes=tuple(trim_prefixes),
        replaces=tuple(replaces),
        replace_suffixes=tuple(replace_suffixes),
        replace_prefixes=tuple(replace_prefixes),
        copy_to=tuple(copy_to),
        paste_from=tuple(paste_from),
        date_tag_ops=date_tags,
        delete_date_tag_ops=delete_date_tags,
        set_overrides=set_overrides,
    )


def parse_filename_ops(entries: Iterable[str]) -> FilenameOps:
    """Parse filename operation strings into a FilenameOps model.

    Args:
        entries: Operation strings like ``prefix:[NEW] `` or
            ``date-tag:prefix:ymd``.

    Returns:
        Parsed, immutable FilenameOps.

    Raises:
        ConfigError: On any malformed or unknown operation, or when a
            singleton operation (set, date-tag, delete-date-tag) repeats.
    """
    set_value: str | None = None
    appends: list[str] = []
    prefixes: list[str] = []
    replaces: list[FilenameReplace] = []
    replace_prefixes: list[FilenameReplace] = []
    replace_suffixes: list[FilenameReplace] = []
    date_tag: DateTagOp | None = None
    delete_date_tag: DateTagOp | None = None

    for entry in entries:
        parts = escaped_split(entry)
        if len(parts) not in (2, 3):
            raise ConfigError(
                f"invalid filename operation {entry!r}: {_FILENAME_FORMAT_HINT}"
            )
        op = normalize_op_name(parts[0])

        if len(parts) == 2:
            if op not in FILENAME_TWO_PART_OPS:
                raise ConfigError(
                    f"invalid filename operation {entry!r}: unknown operation "
                    f"{parts[0]!r} for two-part form"
                )
            value = parts[1]
            if op == "set":
                if set_value is not None:
                    raise ConfigError(
                        f"only one set operation is allowed per run, got {entry!r}"
                    )
                set_value = value
            elif op == "append":
                appends.append(value)
            else:
                prefixes.append(value)
        else:
            if op not in FILENAME_THREE_PART_OPS:
                raise ConfigError(
                    f"invalid filename operation {entry!r}: unknown operation "
                    f"{parts[0]!r} for three-part form"
                )
            first, second = parts[1], parts[2]
            if op == "replace":
                replaces.append(FilenameReplace(first, second))
            elif op == "replace-prefix":
                replace_prefixes.append(FilenameReplace(first, second))
            elif op == "replace-suffix":
                replace_suffixes.append(FilenameReplace(first, second))
            elif op == "date-tag":
                if date_tag is not None:
                    raise ConfigError("only one filename date-tag operation is allowed")
                date_tag = DateTagOp(
                    parse_location(first, allow_all=False), parse_date_format(second)
                )
            else:
                if delete_date_tag is not None:
                    raise ConfigError(
                        "only one filename delete-date-tag operation is allowed, "
                        "use location 'all' to remove every tag"
                    )
                delete_date_tag = DateTagOp(
                    parse_location(first, allow_all=True), parse_date_format(second)
                )

        logger.debug("Added filename operation %r", entry)

    return FilenameOps(
        set_value=set_value,
        appends=tuple(appends),
        prefixes=tuple(prefixes),
        replaces=tuple(replaces),
        replace_prefixes=tuple(replace_prefixes),
        replace_suffixes=tuple(replace_suffixes),
        date_tag=date_tag,
        delete_date_tag=delete_date_tag,
    )


def describe_meta_ops(ops: MetaOps) -> list[str]:
    """Render a MetaOps model as human-readable lines."""
    lines: list[str] = []
    lines.extend(f"set {op.field} = {op.value!r}" for op in ops.set_fields)
    lines.extend(f"copy {op.field} -> {op.dest}" for op in ops.copy_to)
    lines.extend(f"paste {op.origin} -> {op.field}" for op in ops.paste_from)
    lines.extend(
        f"replace in {op.field}: {op.find!r} -> {op.replacement!r}"
        for op in ops.replaces
    )
    lines.extend(
        f"replace prefix of {op.field}: {op.prefix!r} -> {op.replacement!r}"
        for op in ops.replace_prefixes
    )
    lines.extend(
        f"replace suffix of {op.field}: {op.suffix!r} -> {op.replacement!r}"
        for op in ops.replace_suffixes
    )
    lines.extend(
        f"trim prefix of {op.field}: {op.prefix!r}" for op in ops.trim_prefixes
    )
    lines.extend(
        f"trim suffix of {op.field}: {op.suffix!r}" for op in ops.trim_suffixes
    )
    lines.extend(f"prefix {op.field} with {op.value!r}" for op in ops.prefixes)
    lines.extend(f"append {op.value!r} to {op.field}" for op in ops.appends)
    lines.extend(
        f"delete date tag from {name} ({op.location.value}, {op.format.value})"
        for name, op in ops.delete_date_tag_ops.items()
    )
    lines.extend(
        f"add date tag to {name} ({op.location.value}, {op.format.value})"
        for name, op in ops.date_tag_ops.items()
    )
    for category, override in ops.set_overrides.items():
        if override.set_value is not None:
            lines.append(f"set all {category.value} = {override.set_value!r}")
        lines.extend(f"append {v!r} to all {category.value}" for v in override.appends)
        lines.extend(
            f"replace in all {category.value}: {f!r} -> {r!r}"
            for f, r in override.replaces
        )
    return lines


def describe_filename_ops(ops: FilenameOps) -> list[str]:
    """Render a FilenameOps model as human-readable lines."""
    lines: list[str] = []
    if ops.set_value is not None:
        lines.append(f"set filename = {ops.set_value!r}")
    lines.extend(f"replace {r.find!r} -> {r.replacement!r}" for r in ops.replaces)
    lines.extend(
        f"replace prefix {r.find!r} -> {r.replacement!r}" for r in ops.replace_prefixes
    )
    lines.extend(
        f"replace suffix {r.find!r} -> {r.replacement!r}" for r in ops.replace_suffixes
    )
    lines.extend(f"prefix {v!r}" for v in ops.prefixes)
    lines.extend(f"append {v!r}" for v in ops.appends)
    if ops.delete_date_tag:
        op = ops.delete_date_tag
        lines.append(f"delete date tag ({op.location.value}, {op.format.value})")
    if ops.date_tag:
        op = ops.date_tag
        lines.append(f"add date tag ({op.location.value}, {op.format.value})")
    return lines
