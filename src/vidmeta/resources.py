"""Resource gate: hold back new records while the machine is busy."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import psutil

from vidmeta.exceptions import OperationCanceled

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = 0.5
MAX_BACKOFF = 5.0


class ResourceGate:
    """Blocks until CPU and memory are within limits.

    CPU is this process's utilization (percent of one core, so values above
    100 are possible on multi-core machines). Memory is system-wide
    available memory.
    """

    def __init__(
        self,
        max_cpu_pct: float = 100.0,
        min_free_mem_bytes: int = 0,
        stop_event: threading.Event | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_cpu_pct = max_cpu_pct
        self.min_free_mem_bytes = min_free_mem_bytes
        self.stop_event = stop_event
        self._sleep = sleep
        self._process = psutil.Process()
        self._lock = threading.Lock()
        # Prime the counter; the first cpu_percent() call always returns 0.0
        self._process.cpu_percent(interval=None)

    @property
    def enabled(self) -> bool:
        return self.max_cpu_pct < 100.0 or self.min_free_mem_bytes > 0

    def _cpu_percent(self) -> float:
        with self._lock:
            return self._process.cpu_percent(interval=None)

    def check(self) -> str | None:
        """Return why the gate is closed, or None if work may start."""
        if self.max_cpu_pct < 100.0:
            cpu = self._cpu_percent()
            if cpu > self.max_cpu_pct:
                return f"CPU {cpu:.1f}% > {self.max_cpu_pct:.1f}%"
        if self.min_free_mem_bytes > 0:
            available = psutil.virtual_memory().available
            if available < self.min_free_mem_bytes:
                return f"free memory {available} < {self.min_free_mem_bytes} bytes"
        return None

    def wait(self) -> None:
        """Block until the gate opens, backing off between checks.

        Raises:
            OperationCanceled: If the stop event is set while waiting.
        """
        if not self.enabled:
            return
        delay = INITIAL_BACKOFF
        while True:
            if self.stop_event is not None and self.stop_event.is_set():
                raise OperationCanceled("canceled while waiting for resources")
            reason = self.check()
            if reason is None:
                return
            logger.debug("Waiting %.1fs for resources: %s", delay, reason)
            self._sleep(delay)
            delay = min(delay * 2, MAX_BACKOFF)
