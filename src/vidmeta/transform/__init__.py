"""Metadata and filename transformers."""

from vidmeta.transform.filename import FilenameTransformer, transform_stem
from vidmeta.transform.meta import MetaTransformer

__all__ = ["FilenameTransformer", "MetaTransformer", "transform_stem"]
