"""Interactive overwrite prompts.

Workers share one PromptState (the global overwrite/preserve answers) and
one OverwritePrompter. Prompts are serialized by a single lock and answered
from a single daemon thread that reads lines from stdin into a queue, so a
blocked read never pins a worker past cancellation.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import TextIO

import click

from vidmeta.exceptions import OperationCanceled, OverwriteCanceled

logger = logging.getLogger(__name__)

# Seconds between stop-event checks while waiting for an answer.
POLL_INTERVAL = 0.2

_EOF = None


class PromptState:
    """Global overwrite/preserve answers shared across workers."""

    def __init__(self, overwrite_all: bool = False, preserve_all: bool = False):
        self._lock = threading.Lock()
        self._overwrite_all = overwrite_all
        self._preserve_all = preserve_all

    @property
    def overwrite_all(self) -> bool:
        with self._lock:
            return self._overwrite_all

    @property
    def preserve_all(self) -> bool:
        with self._lock:
            return self._preserve_all

    def set_overwrite_all(self) -> None:
        with self._lock:
            self._overwrite_all = True
            self._preserve_all = False

    def set_preserve_all(self) -> None:
        with self._lock:
            self._preserve_all = True
            self._overwrite_all = False


class LineReader:
    """Single background reader that feeds input lines into a queue."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._queue: queue.Queue[str | None] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()

    def _ensure_started(self) -> None:
        with self._start_lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._read_loop, name="vidmeta-stdin", daemon=True
            )
            self._thread.start()

    def _read_loop(self) -> None:
        stream = self._stream if self._stream is not None else sys.stdin
        try:
            for line in iter(stream.readline, ""):
                self._queue.put(line.strip())
        except (OSError, ValueError) as e:
            logger.warning("Stopped reading input: %s", e)
        finally:
            self._queue.put(_EOF)

    def read(self, stop_event: threading.Event | None = None) -> str | None:
        """Wait for the next line, or None at end of input.

        Raises:
            OperationCanceled: If ``stop_event`` is set while waiting.
        """
        self._ensure_started()
        while True:
            if stop_event is not None and stop_event.is_set():
                raise OperationCanceled("canceled while waiting for input")
            try:
                return self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue


class OverwritePrompter:
    """Decides whether an existing field value may be overwritten.

    Resolution order: per-record overwrite, global overwrite, global
    preserve, then an interactive ``y/n/Y/N`` prompt.
    """

    def __init__(
        self,
        state: PromptState | None = None,
        reader: LineReader | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.state = state or PromptState()
        self.reader = reader or LineReader()
        self.stop_event = stop_event
        self._prompt_lock = threading.Lock()

    def should_overwrite(
        self,
        field: str,
        current: str,
        new: str,
        *,
        record_overwrite: bool = False,
        label: str = "",
    ) -> bool:
        """Return True to overwrite ``field``, False to keep it.

        Raises:
            OverwriteCanceled: The user answered ``n`` for this field.
            OperationCanceled: The batch was canceled or input ended.
        """
        if record_overwrite:
            return True
        decided = self._global_decision()
        if decided is not None:
            return decided

        self._check_canceled()
        with self._prompt_lock:
            # Another worker may have answered Y/N while we waited
            decided = self._global_decision()
            if decided is not None:
                return decided
            return self._ask(field, current, new, label)

    def _global_decision(self) -> bool | None:
        if self.state.overwrite_all:
            return True
        if self.state.preserve_all:
            return False
        return None

    def _check_canceled(self) -> None:
        if self.stop_event is not None and self.stop_event.is_set():
            raise OperationCanceled("batch canceled")

    def _ask(self, field: str, current: str, new: str, label: str) -> bool:
        where = f" in {label}" if label else ""
        click.echo(
            f"Field {field!r}{where} already has a value.\n"
            f"  current: {current!r}\n"
            f"  new:     {new!r}\n"
            "Overwrite? (y)es, (n)o, (Y)es to all, (N)o to all: ",
            err=True,
            nl=False,
        )
        while True:
            answer = self.reader.read(self.stop_event)
            if answer is _EOF:
                raise OperationCanceled("input closed while waiting for an answer")
            if answer == "y":
                return True
            if answer == "n":
                raise OverwriteCanceled(f"kept existing value of {field!r}")
            if answer == "Y":
                self.state.set_overwrite_all()
                logger.info("Overwriting all existing fields from now on")
                return True
            if answer == "N":
                self.state.set_preserve_all()
                logger.info("Preserving all existing fields from now on")
                return False
            click.echo("Please answer y, n, Y or N: ", err=True, nl=False)
