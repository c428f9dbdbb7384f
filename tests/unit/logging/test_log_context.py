"""Unit tests for per-record logging context."""

import logging
import threading
from pathlib import Path

from vidmeta.logging import WorkerContextFilter, get_worker_context, worker_context


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


class TestWorkerContext:
    """Tests for the worker_context() manager."""

    def test_sets_and_restores(self) -> None:
        assert get_worker_context() == (None, None, None)
        with worker_context("01", "F001", Path("/videos/a.mp4")):
            assert get_worker_context() == ("01", "F001", "/videos/a.mp4")
        assert get_worker_context() == (None, None, None)

    def test_nested_contexts(self) -> None:
        with worker_context("01", "F001"):
            with worker_context("02", "F002"):
                assert get_worker_context()[:2] == ("02", "F002")
            assert get_worker_context()[:2] == ("01", "F001")

    def test_restored_after_exception(self) -> None:
        try:
            with worker_context("01"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert get_worker_context() == (None, None, None)

    def test_threads_are_isolated(self) -> None:
        seen: dict[str, tuple] = {}
        barrier = threading.Barrier(2)

        def work(worker_id: str) -> None:
            with worker_context(worker_id, f"F{worker_id}"):
                barrier.wait(timeout=5)
                seen[worker_id] = get_worker_context()

        threads = [threading.Thread(target=work, args=(w,)) for w in ("01", "02")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert seen["01"][:2] == ("01", "F01")
        assert seen["02"][:2] == ("02", "F02")


class TestWorkerContextFilter:
    """Tests for the worker_tag filter."""

    def test_no_context(self) -> None:
        record = _record()
        assert WorkerContextFilter().filter(record)
        assert record.worker_tag == ""
        assert record.worker_id is None

    def test_worker_and_record(self) -> None:
        record = _record()
        with worker_context("03", "F017", "/v/a.mp4"):
            WorkerContextFilter().filter(record)
        assert record.worker_tag == "[W03:F017] "
        assert record.video_path == "/v/a.mp4"

    def test_worker_only(self) -> None:
        record = _record()
        with worker_context("03"):
            WorkerContextFilter().filter(record)
        assert record.worker_tag == "[W03] "
