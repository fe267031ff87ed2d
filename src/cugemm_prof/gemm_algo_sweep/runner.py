from __future__ import annotations

import sys
from typing import TextIO

from cugemm_prof.backends.base import DeviceBuffers, DeviceInfo, GemmBackend

from .algorithms import AlgoFamily, select_algorithms
from .config import ProblemSpec, TypeCombination, byte_width, iter_type_combinations
from .eligibility import NOT_APPLICABLE, quantized_restrictions, tensor_restrictions
from .errors import RuntimeApiError, runtime_api_call
from .log import get_logger
from .profiling import SweepResult, profile
from .report import dims_prefix, header_line, types_prefix, write_sweep
from .run_config import RunConfig

log = get_logger(__name__)


def buffer_sizes(problem: ProblemSpec, combo: TypeCombination) -> tuple[int, int, int]:
    """Byte sizes of A (m*k), B (k*n) and C (m*n) in their storage types."""
    return (
        problem.m * problem.k * byte_width(combo.a),
        problem.k * problem.n * byte_width(combo.b),
        problem.m * problem.n * byte_width(combo.c),
    )


def _sweep(
    config: RunConfig,
    combo: TypeCombination,
    buffers: DeviceBuffers,
    family: AlgoFamily,
    prefix: str,
    *,
    backend: GemmBackend,
    out: TextIO,
) -> SweepResult:
    indices = config.algos if family == "general" else config.tensor_algos
    algorithms = select_algorithms(family, indices=indices, all_algo=config.all_algo)
    log.info("%s sweep over %d algorithm(s) for types %s", family, len(algorithms), combo.label())

    samples = profile(config.problem, combo, buffers, algorithms, config.loop, backend=backend)
    result = SweepResult(combo=combo, family=family, prefix=prefix, samples=tuple(samples))
    write_sweep(out, result)
    return result


def _free_buffers(backend: GemmBackend, ptrs: list[int]) -> RuntimeApiError | None:
    """Free every buffer; failures are logged and the first one is returned."""
    first: RuntimeApiError | None = None
    for ptr in ptrs:
        try:
            runtime_api_call("cudaFree", backend.free, ptr)
        except RuntimeApiError as e:
            log.error("%s", e)
            if first is None:
                first = e
    return first


def _run_combo(
    config: RunConfig,
    combo: TypeCombination,
    device: DeviceInfo,
    *,
    backend: GemmBackend,
    out: TextIO,
) -> list[SweepResult]:
    problem = config.problem
    a_bytes, b_bytes, c_bytes = buffer_sizes(problem, combo)

    allocated: list[int] = []
    try:
        for nbytes in (a_bytes, b_bytes, c_bytes):
            allocated.append(runtime_api_call("cudaMalloc", backend.allocate, nbytes))
        a, b, c = allocated
        buffers = DeviceBuffers(
            a=a,
            b=b,
            c=c,
            a_bytes=a_bytes,
            b_bytes=b_bytes,
            c_bytes=c_bytes,
            alpha=combo.scalar(1),
            beta=combo.scalar(0),
        )

        prefix = dims_prefix(device, problem) + types_prefix(combo)
        prefix += quantized_restrictions(problem).render() if combo.is_quantized else NOT_APPLICABLE

        results = [
            _sweep(config, combo, buffers, "general", prefix + NOT_APPLICABLE, backend=backend, out=out),
        ]

        if device.supports_tensor_ops:
            report = tensor_restrictions(problem, combo, buffers)
            if not report.all_met:
                log.info("Tensor-op restrictions not met for %s: %s", combo.label(), ", ".join(report.failed))
            results.append(_sweep(config, combo, buffers, "tensor", prefix + report.render(), backend=backend, out=out))
        else:
            log.info("Skipping tensor-op sweep: compute capability %d.%d", device.major, device.minor)
    except BaseException:
        _free_buffers(backend, allocated)
        raise

    error = _free_buffers(backend, allocated)
    if error is not None:
        raise error
    return results


def run_sweep(config: RunConfig, backend: GemmBackend, *, out: TextIO | None = None) -> list[SweepResult]:
    """Profile every selected type combination and write result rows to `out`.

    Two rows are written per sweep: the first algorithm in natural order, then
    the fastest. `RuntimeApiError` propagates and ends the run.
    """
    out = sys.stdout if out is None else out

    device = runtime_api_call("cudaGetDeviceProperties", backend.device_info)
    log.info("Device %d: %s (sm_%d%d)", device.index, device.name, device.major, device.minor)

    out.write(header_line() + "\n")

    results: list[SweepResult] = []
    for combo in iter_type_combinations(config.types):
        results += _run_combo(config, combo, device, backend=backend, out=out)
    return results
