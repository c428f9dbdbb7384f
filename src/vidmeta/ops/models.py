"""Operation models for metadata and filename rewrites.

Operations are immutable tagged records. The DSL parser in
:mod:`vidmeta.ops.parser` is the only place strings become these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from vidmeta.dates import DateFormat, DateTagLocation
from vidmeta.exceptions import ConfigError


class OverrideCategory(Enum):
    """Well-known groups of fields that can be edited together."""

    CREDITS = "credits"


# Fields covered by the credits override category.
CREDIT_FIELDS: tuple[str, ...] = (
    "actor",
    "artist",
    "author",
    "composer",
    "creator",
    "director",
    "performer",
    "producer",
    "publisher",
    "studio",
    "writer",
)

OVERRIDE_FIELDS: dict[OverrideCategory, tuple[str, ...]] = {
    OverrideCategory.CREDITS: CREDIT_FIELDS,
}


class NamingStyle(Enum):
    """Whole-stem naming normalization applied to filenames."""

    SPACES = "spaces"
    UNDERSCORES = "underscores"
    FIXES_ONLY = "fixes-only"
    SKIP = "skip"


# =============================================================================
# Metadata operation variants
# =============================================================================


@dataclass(frozen=True)
class SetField:
    """Insert or replace ``field`` with ``value``."""

    field: str
    value: str


@dataclass(frozen=True)
class AppendOp:
    field: str
    value: str


@dataclass(frozen=True)
class PrefixOp:
    field: str
    value: str


@dataclass(frozen=True)
class TrimSuffixOp:
    field: str
    suffix: str


@dataclass(frozen=True)
class TrimPrefixOp:
    field: str
    prefix: str


@dataclass(frozen=True)
class ReplaceOp:
    """Replace every occurrence of ``find`` in ``field``."""

    field: str
    find: str
    replacement: str


@dataclass(frozen=True)
class ReplacePrefixOp:
    field: str
    prefix: str
    replacement: str


@dataclass(frozen=True)
class ReplaceSuffixOp:
    field: str
    suffix: str
    replacement: str


@dataclass(frozen=True)
class CopyToOp:
    """Copy the value of ``field`` into ``dest`` (overwriting)."""

    field: str
    dest: str


@dataclass(frozen=True)
class PasteFromOp:
    """Paste the value of ``origin`` into ``field`` (overwriting).

    Semantically identical to CopyToOp with the arguments reversed.
    """

    field: str
    origin: str

    def as_copy(self) -> CopyToOp:
        return CopyToOp(field=self.origin, dest=self.field)


@dataclass(frozen=True)
class DateTagOp:
    """Add or remove a bracketed date tag at ``location``."""

    location: DateTagLocation
    format: DateFormat


@dataclass(frozen=True)
class OverrideOps:
    """Edits applied to every field of an override category."""

    set_value: str | None = None
    appends: tuple[str, ...] = ()
    replaces: tuple[tuple[str, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.set_value is None and not self.appends and not self.replaces


@dataclass(frozen=True)
class MetaOps:
    """All metadata operations for a run, in declaration order per kind."""

    set_fields: tuple[SetField, ...] = ()
    appends: tuple[AppendOp, ...] = ()
    prefixes: tuple[PrefixOp, ...] = ()
    trim_suffixes: tuple[TrimSuffixOp, ...] = ()
    trim_prefixes: tuple[TrimPrefixOp, ...] = ()
    replaces: tuple[ReplaceOp, ...] = ()
    replace_suffixes: tuple[ReplaceSuffixOp, ...] = ()
    replace_prefixes: tuple[ReplacePrefixOp, ...] = ()
    copy_to: tuple[CopyToOp, ...] = ()
    paste_from: tuple[PasteFromOp, ...] = ()
    date_tag_ops: dict[str, DateTagOp] = field(default_factory=dict)
    delete_date_tag_ops: dict[str, DateTagOp] = field(default_factory=dict)
    set_overrides: dict[OverrideCategory, OverrideOps] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (
            self.set_fields
            or self.appends
            or self.prefixes
            or self.trim_suffixes
            or self.trim_prefixes
            or self.replaces
            or self.replace_suffixes
            or self.replace_prefixes
            or self.copy_to
            or self.paste_from
            or self.date_tag_ops
            or self.delete_date_tag_ops
            or any(not o.is_empty for o in self.set_overrides.values())
        )

    def merge(self, other: MetaOps) -> MetaOps:
        """Return a new MetaOps with ``other``'s operations after ours.

        Date-tag maps and overrides from ``other`` win on key collision.
        """
        overrides = dict(self.set_overrides)
        for category, extra in other.set_overrides.items():
            base = overrides.get(category, OverrideOps())
            overrides[category] = OverrideOps(
                set_value=(
                    extra.set_value if extra.set_value is not None else base.set_value
                ),
                appends=base.appends + extra.appends,
                replaces=base.replaces + extra.replaces,
            )
        return MetaOps(
            set_fields=self.set_fields + other.set_fields,
            appends=self.appends + other.appends,
            prefixes=self.prefixes + other.prefixes,
            trim_suffixes=self.trim_suffixes + other.trim_suffixes,
            trim_prefixes=self.trim_prefixes + other.trim_prefixes,
            replaces=self.replaces + other.replaces,
            replace_suffixes=self.replace_suffixes + other.replace_suffixes,
            replace_prefixes=self.replace_prefixes + other.replace_prefixes,
            copy_to=self.copy_to + other.copy_to,
            paste_from=self.paste_from + other.paste_from,
            date_tag_ops={**self.date_tag_ops, **other.date_tag_ops},
            delete_date_tag_ops={
                **self.delete_date_tag_ops,
                **other.delete_date_tag_ops,
            },
            set_overrides=overrides,
        )


# =============================================================================
# Filename operation variants
# =============================================================================


@dataclass(frozen=True)
class FilenameReplace:
    find: str
    replacement: str


@dataclass(frozen=True)
class FilenameOps:
    """All filename operations for a run.

    ``set_value``, ``date_tag`` and ``delete_date_tag`` are singletons.
    """

    set_value: str | None = None
    appends: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()
    replaces: tuple[FilenameReplace, ...] = ()
    replace_prefixes: tuple[FilenameReplace, ...] = ()
    replace_suffixes: tuple[FilenameReplace, ...] = ()
    date_tag: DateTagOp | None = None
    delete_date_tag: DateTagOp | None = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.set_value is not None
            or self.appends
            or self.prefixes
            or self.replaces
            or self.replace_prefixes
            or self.replace_suffixes
            or self.date_tag
            or self.delete_date_tag
        )

    def merge(self, other: FilenameOps) -> FilenameOps:
        """Combine two op sets; singletons may be declared only once.

        Raises:
            ConfigError: If both sides declare the same singleton.
        """
        for name in ("set_value", "date_tag", "delete_date_tag"):
            if getattr(self, name) is not None and getattr(other, name) is not None:
                raise ConfigError(
                    f"filename operation '{name}' may only be given once per run"
                )
        return FilenameOps(
            set_value=(
                self.set_value if self.set_value is not None else other.set_value
            ),
            appends=self.appends + other.appends,
            prefixes=self.prefixes + other.prefixes,
            replaces=self.replaces + other.replaces,
            replace_prefixes=self.replace_prefixes + other.replace_prefixes,
            replace_suffixes=self.replace_suffixes + other.replace_suffixes,
            date_tag=self.date_tag or other.date_tag,
            delete_date_tag=self.delete_date_tag or other.delete_date_tag,
        )
