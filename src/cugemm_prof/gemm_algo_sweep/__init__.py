"""cuBLAS GemmEx algorithm sweep.

For one GEMM shape and a set of (compute, A, B, C) type combinations, times
every requested CUDA-core and tensor-op algorithm, reports whether the shape
meets the DP4A and tensor-op restrictions, and prints the first and the fastest
algorithm per sweep as comma-separated rows.
"""

from __future__ import annotations
