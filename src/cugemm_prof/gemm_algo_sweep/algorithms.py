from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

import attrs

AlgoFamily = Literal["general", "tensor"]


@attrs.define(frozen=True, slots=True)
class Algorithm:
    family: AlgoFamily
    value: int
    name: str


@attrs.define(frozen=True, slots=True)
class AlgoFamilySpec:
    family: AlgoFamily
    default: Algorithm
    variants: tuple[Algorithm, ...]

    @property
    def catalog(self) -> tuple[Algorithm, ...]:
        """Default sentinel followed by every numbered variant."""
        return (self.default, *self.variants)

    def variant(self, index: int) -> Algorithm:
        if not 0 <= index < len(self.variants):
            raise KeyError(f"{self.family} algorithm index {index} out of range 0..{len(self.variants) - 1}")
        return self.variants[index]


# cublasGemmAlgo_t: CUDA-core algorithms are -1 (default) and 0..23,
# tensor-op algorithms are 99 (default) and 100..115.
GENERAL = AlgoFamilySpec(
    family="general",
    default=Algorithm(family="general", value=-1, name="CUBLAS_GEMM_DEFAULT"),
    variants=tuple(Algorithm(family="general", value=i, name=f"CUBLAS_GEMM_ALGO{i}") for i in range(24)),
)

TENSOR = AlgoFamilySpec(
    family="tensor",
    default=Algorithm(family="tensor", value=99, name="CUBLAS_GEMM_DEFAULT_TENSOR_OP"),
    variants=tuple(
        Algorithm(family="tensor", value=100 + i, name=f"CUBLAS_GEMM_ALGO{i}_TENSOR_OP") for i in range(16)
    ),
)

FAMILIES: dict[AlgoFamily, AlgoFamilySpec] = {"general": GENERAL, "tensor": TENSOR}


def select_algorithms(family: AlgoFamily, *, indices: Sequence[int] | None, all_algo: bool) -> list[Algorithm]:
    """Build the candidate list for one family.

    `all_algo` wins over explicit indices; with neither the family's default
    sentinel is the only candidate.
    """
    spec = FAMILIES[family]
    if all_algo:
        return list(spec.catalog)
    if indices:
        return [spec.variant(i) for i in indices]
    return [spec.default]
