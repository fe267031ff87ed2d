"""
Compute backends for the GEMM algorithm sweep.

`base` defines the interface the sweep engine drives; `cupy_backend` implements
it on top of CuPy's cuBLAS and CUDA runtime bindings. The CuPy module is only
imported when a real device run is requested.
"""
