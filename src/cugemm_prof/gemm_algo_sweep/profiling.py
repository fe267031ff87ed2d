"""
Timed GemmEx sweeps over a list of candidate algorithms.

Each algorithm gets one timed window covering `loop` back-to-back GemmEx calls
with identical arguments, so per-call launch overhead is amortized rather than
measured. Outcomes are classified per call; a fatal status ends that
algorithm's window early and degrades its sample to NaN without stopping the
sweep.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import attrs

from cugemm_prof.backends.base import DeviceBuffers, DeviceTimer, GemmBackend

from .algorithms import AlgoFamily, Algorithm
from .config import ProblemSpec, TypeCombination
from .errors import GemmOutcome, call_site, classify_status, runtime_api_call, status_name
from .log import get_logger

log = get_logger(__name__)

NAN = float("nan")


@attrs.define(frozen=True, slots=True)
class MeasurementSample:
    algo: Algorithm
    time_ms: float
    gflops: float
    outcome: GemmOutcome = "success"

    @property
    def faulted(self) -> bool:
        return math.isnan(self.time_ms)


def throughput_gflops(problem: ProblemSpec, avg_time_ms: float) -> float:
    if avg_time_ms == 0:
        return math.inf
    return problem.flop_count / (avg_time_ms * 1e-3) / 1e9


def time_sort_key(sample: MeasurementSample) -> tuple[bool, float]:
    # NaN is never less than anything: faulted samples sort after every timed one.
    if math.isnan(sample.time_ms):
        return (True, 0.0)
    return (False, sample.time_ms)


def rank(samples: Sequence[MeasurementSample]) -> list[MeasurementSample]:
    """Stable ascending sort by time; faulted samples keep their relative order at the end."""
    return sorted(samples, key=time_sort_key)


@attrs.define(frozen=True, slots=True)
class SweepResult:
    combo: TypeCombination
    family: AlgoFamily
    prefix: str
    samples: tuple[MeasurementSample, ...]

    @property
    def ranked(self) -> list[MeasurementSample]:
        return rank(self.samples)

    @property
    def first(self) -> MeasurementSample:
        return self.samples[0]

    @property
    def best(self) -> MeasurementSample:
        return self.ranked[0]


def _measure(
    problem: ProblemSpec,
    combo: TypeCombination,
    buffers: DeviceBuffers,
    algo: Algorithm,
    loop: int,
    *,
    backend: GemmBackend,
    timer: DeviceTimer,
) -> MeasurementSample:
    outcome: GemmOutcome = "success"

    runtime_api_call("cudaEventRecord(start)", timer.start)
    for _ in range(loop):
        status = backend.gemm_ex(problem, combo, buffers, algo)
        result = classify_status(status)
        if result == "fatal":
            log.error(
                "%s: error: function cublasGemmEx(%s) failed with error %s.",
                call_site(0),
                algo.name,
                status_name(status),
            )
            outcome = "fatal"
            break
        if result == "rejected" and outcome == "success":
            log.debug("%s rejected for %s: %s", algo.name, combo.label(), status_name(status))
            outcome = "rejected"
    elapsed_ms = runtime_api_call("cudaEventElapsedTime", timer.stop)

    if outcome != "success":
        return MeasurementSample(algo=algo, time_ms=NAN, gflops=NAN, outcome=outcome)

    avg_ms = elapsed_ms / loop
    return MeasurementSample(algo=algo, time_ms=avg_ms, gflops=throughput_gflops(problem, avg_ms), outcome=outcome)


def profile(
    problem: ProblemSpec,
    combo: TypeCombination,
    buffers: DeviceBuffers,
    algorithms: Sequence[Algorithm],
    loop: int,
    *,
    backend: GemmBackend,
) -> list[MeasurementSample]:
    """Time every algorithm once, in the given order.

    Parameters
    ----------
    problem, combo, buffers:
        Fixed GemmEx arguments shared by every call in the sweep. Buffers are
        only passed through to the backend.
    algorithms:
        Candidates in their natural order; the returned samples follow it.
    loop:
        Number of GemmEx calls inside each timed window (>= 1).
    backend:
        Backend providing GemmEx and the device timer. Timer failures raise
        `RuntimeApiError`.
    """
    if loop < 1:
        raise ValueError(f"loop must be >= 1, got {loop}")
    if not algorithms:
        raise ValueError("algorithms must not be empty")

    timer = runtime_api_call("cudaEventCreate", backend.create_timer)
    samples: list[MeasurementSample] = []
    try:
        for algo in algorithms:
            sample = _measure(problem, combo, buffers, algo, loop, backend=backend, timer=timer)
            log.debug("%s %s: time_ms=%s gflops=%s (%s)", combo.label(), algo.name, sample.time_ms, sample.gflops, sample.outcome)
            samples.append(sample)
    finally:
        runtime_api_call("cudaEventDestroy", timer.destroy)
    return samples
