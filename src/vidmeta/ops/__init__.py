"""Operation model: typed metadata and filename operations and their DSL."""

from vidmeta.ops.models import (
    CREDIT_FIELDS,
    FilenameOps,
    MetaOps,
    NamingStyle,
    OverrideCategory,
)
from vidmeta.ops.parser import parse_filename_ops, parse_meta_ops
from vidmeta.ops.presets import Preset, load_preset
from vidmeta.ops.templates import expand_templates

__all__ = [
    "CREDIT_FIELDS",
    "FilenameOps",
    "MetaOps",
    "NamingStyle",
    "OverrideCategory",
    "Preset",
    "expand_templates",
    "load_preset",
    "parse_filename_ops",
    "parse_meta_ops",
]
