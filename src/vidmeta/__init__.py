"""vidmeta - batch metadata editing and file renaming for video libraries."""

__version__ = "0.1.0"
