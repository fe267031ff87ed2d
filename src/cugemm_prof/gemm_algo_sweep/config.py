from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

import attrs
import numpy as np

Operation = Literal["CUBLAS_OP_N", "CUBLAS_OP_T"]

OPERATIONS: dict[Operation, int] = {"CUBLAS_OP_N": 0, "CUBLAS_OP_T": 1}


@attrs.define(frozen=True, slots=True)
class DataType:
    name: str
    value: int
    size: int
    host_dtype: str | None = None


# cudaDataType_t values and storage widths. host_dtype is set for types that
# appear as a compute type (alpha/beta are created in that representation).
DATA_TYPES: dict[str, DataType] = {
    "CUDA_R_8I": DataType(name="CUDA_R_8I", value=3, size=1),
    "CUDA_R_16F": DataType(name="CUDA_R_16F", value=2, size=2, host_dtype="float16"),
    "CUDA_R_32I": DataType(name="CUDA_R_32I", value=10, size=4, host_dtype="int32"),
    "CUDA_R_32F": DataType(name="CUDA_R_32F", value=0, size=4, host_dtype="float32"),
    "CUDA_R_64F": DataType(name="CUDA_R_64F", value=1, size=8, host_dtype="float64"),
    "CUDA_C_8I": DataType(name="CUDA_C_8I", value=7, size=2),
    "CUDA_C_32F": DataType(name="CUDA_C_32F", value=4, size=8, host_dtype="complex64"),
    "CUDA_C_64F": DataType(name="CUDA_C_64F", value=5, size=16, host_dtype="complex128"),
}

# cublasComputeType_t for each compute data type (CUDA 11+ GemmEx signature).
COMPUTE_TYPES: dict[str, int] = {
    "CUDA_R_16F": 64,  # CUBLAS_COMPUTE_16F
    "CUDA_R_32F": 68,  # CUBLAS_COMPUTE_32F
    "CUDA_R_64F": 70,  # CUBLAS_COMPUTE_64F
    "CUDA_R_32I": 72,  # CUBLAS_COMPUTE_32I
    "CUDA_C_32F": 68,
    "CUDA_C_64F": 70,
}


def byte_width(type_name: str) -> int:
    return DATA_TYPES[type_name].size


@attrs.define(frozen=True, slots=True)
class ProblemSpec:
    m: int
    n: int
    k: int
    trans_a: Operation = "CUBLAS_OP_N"
    trans_b: Operation = "CUBLAS_OP_N"

    def __attrs_post_init__(self) -> None:
        for name in ("m", "n", "k"):
            v = getattr(self, name)
            if v <= 0:
                raise ValueError(f"{name} must be a positive integer, got {v}")
        for name in ("trans_a", "trans_b"):
            if getattr(self, name) not in OPERATIONS:
                raise ValueError(f"Unknown operation for {name}: {getattr(self, name)!r}")

    @property
    def lda(self) -> int:
        return self.m if self.trans_a == "CUBLAS_OP_N" else self.k

    @property
    def ldb(self) -> int:
        return self.k if self.trans_b == "CUBLAS_OP_N" else self.n

    @property
    def ldc(self) -> int:
        return self.m

    @property
    def flop_count(self) -> int:
        return 2 * self.m * self.n * self.k


@attrs.define(frozen=True, slots=True)
class TypeCombination:
    index: int
    compute: str
    a: str
    b: str
    c: str

    @property
    def is_quantized(self) -> bool:
        return self.compute == "CUDA_R_32I"

    @property
    def compute_type(self) -> int:
        return COMPUTE_TYPES[self.compute]

    def scalar(self, value: int) -> np.ndarray:
        """One-element host buffer holding `value` in the compute type's representation."""
        host_dtype = DATA_TYPES[self.compute].host_dtype
        if host_dtype is None:
            raise ValueError(f"{self.compute} cannot be used as a compute type")
        return np.full(1, value, dtype=np.dtype(host_dtype))

    def label(self) -> str:
        return f"{self.index}, {{{self.compute}, {self.a}, {self.b}, {self.c}}}"


def _combo(index: int, compute: str, a: str, b: str, c: str) -> TypeCombination:
    return TypeCombination(index=index, compute=compute, a=a, b=b, c=c)


TYPE_COMBINATIONS: tuple[TypeCombination, ...] = (
    _combo(0, "CUDA_R_16F", "CUDA_R_16F", "CUDA_R_16F", "CUDA_R_16F"),
    _combo(1, "CUDA_R_32I", "CUDA_R_8I", "CUDA_R_8I", "CUDA_R_32I"),
    _combo(2, "CUDA_R_32F", "CUDA_R_16F", "CUDA_R_16F", "CUDA_R_16F"),
    _combo(3, "CUDA_R_32F", "CUDA_R_8I", "CUDA_R_8I", "CUDA_R_32F"),
    _combo(4, "CUDA_R_32F", "CUDA_R_16F", "CUDA_R_16F", "CUDA_R_32F"),
    _combo(5, "CUDA_R_32F", "CUDA_R_32F", "CUDA_R_32F", "CUDA_R_32F"),
    _combo(6, "CUDA_R_64F", "CUDA_R_64F", "CUDA_R_64F", "CUDA_R_64F"),
    _combo(7, "CUDA_C_32F", "CUDA_C_8I", "CUDA_C_8I", "CUDA_C_32F"),
    _combo(8, "CUDA_C_32F", "CUDA_C_32F", "CUDA_C_32F", "CUDA_C_32F"),
)

DEFAULT_TYPE_INDEX = 5


def iter_type_combinations(indices: Iterable[int]) -> Iterable[TypeCombination]:
    for idx in indices:
        if not 0 <= idx < len(TYPE_COMBINATIONS):
            raise KeyError(f"Unknown type combination index {idx!r}. Known: 0..{len(TYPE_COMBINATIONS) - 1}")
        yield TYPE_COMBINATIONS[idx]


def type_combinations_table() -> str:
    lines = ["available combination of types:", "ID, ComputeType, Atype,      Btype,      Ctype"]
    lines += [c.label() for c in TYPE_COMBINATIONS]
    return "\n".join(lines)
