from __future__ import annotations

import cupy
from cupy.cuda import runtime
from cupy_backends.cuda.libs import cublas

from cugemm_prof.gemm_algo_sweep.algorithms import Algorithm
from cugemm_prof.gemm_algo_sweep.config import DATA_TYPES, OPERATIONS, ProblemSpec, TypeCombination
from cugemm_prof.gemm_algo_sweep.errors import BackendError, status_name
from cugemm_prof.gemm_algo_sweep.log import get_logger

from .base import DeviceBuffers, DeviceInfo, DeviceTimer, GemmBackend

log = get_logger(__name__)


class CupyEventTimer(DeviceTimer):
    def __init__(self) -> None:
        try:
            self._start: cupy.cuda.Event | None = cupy.cuda.Event()
            self._end: cupy.cuda.Event | None = cupy.cuda.Event()
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

    def start(self) -> None:
        if self._start is None:
            raise BackendError("timer already destroyed")
        try:
            self._start.record()
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

    def stop(self) -> float:
        if self._start is None or self._end is None:
            raise BackendError("timer already destroyed")
        try:
            self._end.record()
            self._end.synchronize()
            return float(cupy.cuda.get_elapsed_time(self._start, self._end))
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

    def destroy(self) -> None:
        self._start = None
        self._end = None


class CupyGemmBackend(GemmBackend):
    """cuBLAS GemmEx on one device through CuPy's low-level bindings."""

    def __init__(self, device: int) -> None:
        self._device = device
        try:
            runtime.setDevice(device)
            props = runtime.getDeviceProperties(device)
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

        name = props["name"]
        if isinstance(name, bytes):
            name = name.decode(errors="replace")
        self._info = DeviceInfo(index=device, name=str(name), major=int(props["major"]), minor=int(props["minor"]))

        try:
            self._handle: int | None = cublas.create()
        except cublas.CUBLASError as e:
            raise BackendError(status_name(e.status)) from e
        log.info("Using device %d: %s (sm_%d%d)", device, self._info.name, self._info.major, self._info.minor)

    def device_info(self) -> DeviceInfo:
        return self._info

    def allocate(self, nbytes: int) -> int:
        try:
            return int(runtime.malloc(nbytes))
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

    def free(self, ptr: int) -> None:
        try:
            runtime.free(ptr)
        except runtime.CUDARuntimeError as e:
            raise BackendError(str(e)) from e

    def create_timer(self) -> DeviceTimer:
        return CupyEventTimer()

    def gemm_ex(
        self,
        problem: ProblemSpec,
        combo: TypeCombination,
        buffers: DeviceBuffers,
        algo: Algorithm,
    ) -> int:
        if self._handle is None:
            raise BackendError("cuBLAS handle already destroyed")
        try:
            cublas.gemmEx(
                self._handle,
                OPERATIONS[problem.trans_a],
                OPERATIONS[problem.trans_b],
                problem.m,
                problem.n,
                problem.k,
                buffers.alpha.ctypes.data,
                buffers.a,
                DATA_TYPES[combo.a].value,
                problem.lda,
                buffers.b,
                DATA_TYPES[combo.b].value,
                problem.ldb,
                buffers.beta.ctypes.data,
                buffers.c,
                DATA_TYPES[combo.c].value,
                problem.ldc,
                combo.compute_type,
                algo.value,
            )
        except cublas.CUBLASError as e:
            return int(e.status)
        return 0

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            cublas.destroy(self._handle)
        except cublas.CUBLASError as e:
            raise BackendError(status_name(e.status)) from e
        finally:
            self._handle = None
