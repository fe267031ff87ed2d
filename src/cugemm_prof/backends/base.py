"""
Backend interfaces consumed by the sweep engine.

A backend owns the accelerator-side resources (library handle, stream, device
memory) and exposes the handful of calls the sweep needs. Runtime failures are
reported by raising `BackendError`; GemmEx itself reports through its integer
status so the engine can classify every invocation.
"""

from __future__ import annotations

import abc

import attrs
import numpy as np

from cugemm_prof.gemm_algo_sweep.algorithms import Algorithm
from cugemm_prof.gemm_algo_sweep.config import ProblemSpec, TypeCombination


@attrs.define(frozen=True, slots=True)
class DeviceInfo:
    index: int
    name: str
    major: int
    minor: int

    @property
    def supports_tensor_ops(self) -> bool:
        return self.major > 6


@attrs.define(frozen=True, slots=True, eq=False)
class DeviceBuffers:
    a: int
    b: int
    c: int
    a_bytes: int
    b_bytes: int
    c_bytes: int
    alpha: np.ndarray
    beta: np.ndarray


class DeviceTimer(abc.ABC):
    """Start/stop event pair recorded on the backend's stream."""

    @abc.abstractmethod
    def start(self) -> None: ...

    @abc.abstractmethod
    def stop(self) -> float:
        """Record the end event, block until it completes and return elapsed milliseconds."""

    @abc.abstractmethod
    def destroy(self) -> None: ...


class GemmBackend(abc.ABC):
    @abc.abstractmethod
    def device_info(self) -> DeviceInfo: ...

    @abc.abstractmethod
    def allocate(self, nbytes: int) -> int:
        """Allocate device memory and return its address."""

    @abc.abstractmethod
    def free(self, ptr: int) -> None: ...

    @abc.abstractmethod
    def create_timer(self) -> DeviceTimer: ...

    @abc.abstractmethod
    def gemm_ex(
        self,
        problem: ProblemSpec,
        combo: TypeCombination,
        buffers: DeviceBuffers,
        algo: Algorithm,
    ) -> int:
        """Issue one GemmEx call and return its cuBLAS status code."""

    def close(self) -> None:
        return None
