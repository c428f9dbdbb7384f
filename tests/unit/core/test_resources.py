"""Tests for the CPU and memory resource gate."""

import threading
from types import SimpleNamespace

import pytest

import vidmeta.resources as resources
from vidmeta.exceptions import OperationCanceled
from vidmeta.resources import MAX_BACKOFF, ResourceGate


class _FakeProcess:
    def __init__(self, readings: list[float]) -> None:
        self.readings = list(readings)

    def cpu_percent(self, interval=None) -> float:
        return self.readings.pop(0) if self.readings else 0.0


@pytest.fixture
def fake_psutil(monkeypatch: pytest.MonkeyPatch):
    """Replace psutil process and memory readings."""
    state = SimpleNamespace(cpu=[], available=[10**9])

    def process():
        # The first reading primes the counter
        return _FakeProcess([0.0, *state.cpu])

    def virtual_memory():
        if len(state.available) > 1:
            return SimpleNamespace(available=state.available.pop(0))
        return SimpleNamespace(available=state.available[0])

    monkeypatch.setattr(resources.psutil, "Process", process)
    monkeypatch.setattr(resources.psutil, "virtual_memory", virtual_memory)
    return state


class TestResourceGate:
    """Tests for ResourceGate."""

    def test_disabled_by_default(self, fake_psutil) -> None:
        sleeps: list[float] = []
        gate = ResourceGate(sleep=sleeps.append)
        assert not gate.enabled
        gate.wait()
        assert sleeps == []

    def test_waits_for_cpu_with_backoff(self, fake_psutil) -> None:
        fake_psutil.cpu = [90.0, 80.0, 70.0, 10.0]
        sleeps: list[float] = []
        gate = ResourceGate(max_cpu_pct=50.0, sleep=sleeps.append)

        gate.wait()

        assert sleeps == [0.5, 1.0, 2.0]

    def test_backoff_is_capped(self, fake_psutil) -> None:
        fake_psutil.cpu = [99.0] * 6
        sleeps: list[float] = []
        ResourceGate(max_cpu_pct=50.0, sleep=sleeps.append).wait()
        assert max(sleeps) == MAX_BACKOFF

    def test_waits_for_memory(self, fake_psutil) -> None:
        fake_psutil.available = [100, 100, 5000]
        sleeps: list[float] = []
        gate = ResourceGate(min_free_mem_bytes=1000, sleep=sleeps.append)

        assert gate.check() == "free memory 100 < 1000 bytes"
        gate.wait()
        assert len(sleeps) == 1

    def test_stop_event_cancels_wait(self, fake_psutil) -> None:
        fake_psutil.cpu = [99.0] * 10
        stop = threading.Event()

        def sleep(delay: float) -> None:
            stop.set()

        gate = ResourceGate(max_cpu_pct=50.0, stop_event=stop, sleep=sleep)
        with pytest.raises(OperationCanceled):
            gate.wait()
