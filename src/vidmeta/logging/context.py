"""Per-record logging context.

Workers tag every log line with their slot and record number, so output
from parallel records can be told apart: ``[W02:F017] Renamed ...``.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

_worker_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "vidmeta_worker_id", default=None
)
_record_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "vidmeta_record_id", default=None
)
_video_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "vidmeta_video_path", default=None
)


def get_worker_context() -> tuple[str | None, str | None, str | None]:
    """Return (worker_id, record_id, video_path) for the current context."""
    return _worker_id.get(), _record_id.get(), _video_path.get()


@contextmanager
def worker_context(
    worker_id: str,
    record_id: str | None = None,
    video_path: Path | str | None = None,
) -> Iterator[None]:
    """Tag log records emitted inside the block.

    The previous context is restored on exit, so contexts nest.

    Example:
        with worker_context("01", "F003", "/videos/clip.mp4"):
            logger.info("Processing")  # "[W01:F003] ... Processing"
    """
    tokens = (
        _worker_id.set(worker_id),
        _record_id.set(record_id),
        _video_path.set(str(video_path) if video_path is not None else None),
    )
    try:
        yield
    finally:
        _video_path.reset(tokens[2])
        _record_id.reset(tokens[1])
        _worker_id.reset(tokens[0])


class WorkerContextFilter(logging.Filter):
    """Adds ``worker_id``, ``record_id``, ``video_path`` and ``worker_tag``."""

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id, record_id, video_path = get_worker_context()
        record.worker_id = worker_id
        record.record_id = record_id
        record.video_path = video_path

        if not worker_id:
            record.worker_tag = ""
        elif record_id:
            record.worker_tag = f"[W{worker_id}:{record_id}] "
        else:
            record.worker_tag = f"[W{worker_id}] "
        return True
