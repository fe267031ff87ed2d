from __future__ import annotations

from typing import TextIO

from cugemm_prof.backends.base import DeviceInfo

from .config import ProblemSpec, TypeCombination
from .profiling import MeasurementSample, SweepResult

HEADER_COLUMNS: tuple[str, ...] = (
    "device",
    "op(A)",
    "op(B)",
    "m",
    "n",
    "k",
    "Atype",
    "Btype",
    "Ctype",
    "ComputeType",
    "Dp4aRestrictions(lda.ldb)",
    "TensorCoreRestrictions(m.k.A.B.C.lda.ldb.ldc)",
    "algo",
    "time(ms)",
    "GFLOPS",
)


def header_line() -> str:
    return ", ".join(HEADER_COLUMNS)


def _format_float(v: float) -> str:
    return f"{v:g}"


def dims_prefix(device: DeviceInfo, problem: ProblemSpec) -> str:
    return f"{device.name}, {problem.trans_a}, {problem.trans_b}, {problem.m}, {problem.n}, {problem.k}, "


def types_prefix(combo: TypeCombination) -> str:
    return f"{combo.a}, {combo.b}, {combo.c}, {combo.compute}, "


def format_sample(sample: MeasurementSample) -> str:
    return f"{sample.algo.name}, {_format_float(sample.time_ms)}, {_format_float(sample.gflops)}"


def sweep_lines(result: SweepResult) -> list[str]:
    """Natural-order first result, then the fastest result."""
    return [result.prefix + format_sample(result.first), result.prefix + format_sample(result.best)]


def write_sweep(out: TextIO, result: SweepResult) -> None:
    for line in sweep_lines(result):
        out.write(line + "\n")
    out.flush()
