"""Logging setup: text or JSON output, file rotation, worker tags."""

from vidmeta.logging.config import configure_logging
from vidmeta.logging.context import (
    WorkerContextFilter,
    get_worker_context,
    worker_context,
)
from vidmeta.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "WorkerContextFilter",
    "configure_logging",
    "get_worker_context",
    "worker_context",
]
