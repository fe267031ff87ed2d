from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np
import pytest

from cugemm_prof.backends.base import DeviceBuffers, DeviceInfo, DeviceTimer, GemmBackend
from cugemm_prof.gemm_algo_sweep.algorithms import Algorithm
from cugemm_prof.gemm_algo_sweep.config import ProblemSpec, TypeCombination
from cugemm_prof.gemm_algo_sweep import log
from cugemm_prof.gemm_algo_sweep.errors import BackendError


class FakeTimer(DeviceTimer):
    def __init__(self, backend: FakeBackend) -> None:
        self._backend = backend
        self.destroyed = False

    def start(self) -> None:
        if self._backend.fail_timer_start:
            raise BackendError("cudaErrorLaunchFailure")
        self._backend.events.append("start")

    def stop(self) -> float:
        self._backend.events.append("stop")
        if self._backend.elapsed_ms:
            return self._backend.elapsed_ms.pop(0)
        return self._backend.default_elapsed_ms

    def destroy(self) -> None:
        self.destroyed = True


class FakeBackend(GemmBackend):
    """Scripted backend: statuses per algorithm value, elapsed times per timed window."""

    def __init__(
        self,
        *,
        major: int = 6,
        minor: int = 1,
        name: str = "Fake GPU",
        statuses: dict[int, int] | None = None,
        elapsed_ms: Iterable[float] = (),
        default_elapsed_ms: float = 1.0,
        base_address: int = 0x7F0000000000,
    ) -> None:
        self.info = DeviceInfo(index=0, name=name, major=major, minor=minor)
        self.statuses = dict(statuses or {})
        self.elapsed_ms = list(elapsed_ms)
        self.default_elapsed_ms = default_elapsed_ms
        self.fail_timer_start = False
        self.fail_allocate_after: int | None = None
        self.fail_free = False
        self.fail_close = False
        self.events: list[str] = []
        self.calls: list[int] = []
        self.allocated: dict[int, int] = {}
        self.freed: list[int] = []
        self.timers: list[FakeTimer] = []
        self.closed = False
        self._next = base_address

    def device_info(self) -> DeviceInfo:
        return self.info

    def allocate(self, nbytes: int) -> int:
        if self.fail_allocate_after is not None and len(self.allocated) >= self.fail_allocate_after:
            raise BackendError("cudaErrorMemoryAllocation")
        ptr = self._next
        self.allocated[ptr] = nbytes
        self._next += (nbytes + 255) // 256 * 256
        return ptr

    def free(self, ptr: int) -> None:
        self.freed.append(ptr)
        if self.fail_free:
            raise BackendError("cudaErrorIllegalAddress")

    def create_timer(self) -> DeviceTimer:
        timer = FakeTimer(self)
        self.timers.append(timer)
        return timer

    def gemm_ex(self, problem: ProblemSpec, combo: TypeCombination, buffers: DeviceBuffers, algo: Algorithm) -> int:
        self.calls.append(algo.value)
        self.events.append(f"gemm:{algo.value}")
        return self.statuses.get(algo.value, 0)

    def close(self) -> None:
        self.closed = True
        if self.fail_close:
            raise BackendError("CUBLAS_STATUS_NOT_INITIALIZED")


@pytest.fixture(autouse=True)
def _isolated_package_logger(monkeypatch: pytest.MonkeyPatch):
    # configure_logging mutates the process-wide package logger.
    logger = logging.getLogger(log.ROOT_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    monkeypatch.setattr(log, "_configured", False)
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def make_buffers():
    def _make(*, a: int = 0x1000, b: int = 0x2000, c: int = 0x3000) -> DeviceBuffers:
        return DeviceBuffers(
            a=a,
            b=b,
            c=c,
            a_bytes=0,
            b_bytes=0,
            c_bytes=0,
            alpha=np.ones(1, dtype=np.float32),
            beta=np.zeros(1, dtype=np.float32),
        )

    return _make
