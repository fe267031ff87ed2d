from __future__ import annotations

import attrs

from cugemm_prof.backends.base import DeviceBuffers

from .config import ProblemSpec, TypeCombination, byte_width

NOT_APPLICABLE = "NA, "
ALL_MEET = "all meet, "


@attrs.define(frozen=True, slots=True)
class RestrictionCheck:
    check_name: str
    passed: bool


@attrs.define(frozen=True, slots=True)
class EligibilityReport:
    family: str
    checks: tuple[RestrictionCheck, ...]

    @property
    def bits(self) -> tuple[bool, ...]:
        return tuple(c.passed for c in self.checks)

    @property
    def all_met(self) -> bool:
        return all(self.bits)

    @property
    def failed(self) -> list[str]:
        return [c.check_name for c in self.checks if not c.passed]

    def render(self) -> str:
        """`all meet, ` or every predicate as 0/1 followed by `.`, e.g. `1.1.0.1.1.1.1.1., `."""
        if self.all_met:
            return ALL_MEET
        return "".join(f"{int(b)}." for b in self.bits) + ", "


def quantized_restrictions(problem: ProblemSpec) -> EligibilityReport:
    """DP4A (int8 in, int32 compute) stride requirements."""
    return EligibilityReport(
        family="quantized",
        checks=(
            RestrictionCheck(check_name="lda", passed=problem.lda % 4 == 0),
            RestrictionCheck(check_name="ldb", passed=problem.ldb % 4 == 0),
        ),
    )


def tensor_restrictions(problem: ProblemSpec, combo: TypeCombination, buffers: DeviceBuffers) -> EligibilityReport:
    """Tensor-op requirements on dimensions, buffer alignment and strides.

    See https://docs.nvidia.com/cuda/cublas/#tensorop-restrictions.
    """
    return EligibilityReport(
        family="tensor",
        checks=(
            RestrictionCheck(check_name="m", passed=problem.m % 4 == 0),
            RestrictionCheck(check_name="k", passed=problem.k % 8 == 0),
            RestrictionCheck(check_name="A", passed=buffers.a % 16 == 0),
            RestrictionCheck(check_name="B", passed=buffers.b % 16 == 0),
            RestrictionCheck(check_name="C", passed=buffers.c % 16 == 0),
            RestrictionCheck(check_name="lda", passed=problem.lda % (16 // byte_width(combo.a)) == 0),
            RestrictionCheck(check_name="ldb", passed=problem.ldb % (16 // byte_width(combo.b)) == 0),
            RestrictionCheck(check_name="ldc", passed=problem.ldc % (16 // byte_width(combo.c)) == 0),
        ),
    )
