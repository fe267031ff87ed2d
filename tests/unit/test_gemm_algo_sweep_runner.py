from __future__ import annotations

import io

import pytest

from cugemm_prof.gemm_algo_sweep.config import TYPE_COMBINATIONS, ProblemSpec
from cugemm_prof.gemm_algo_sweep.errors import CUBLAS_STATUS_NOT_SUPPORTED, RuntimeApiError
from cugemm_prof.gemm_algo_sweep.report import header_line
from cugemm_prof.gemm_algo_sweep.run_config import RunConfig
from cugemm_prof.gemm_algo_sweep.runner import buffer_sizes, run_sweep

PREFIX_32F = "Fake GPU, CUBLAS_OP_N, CUBLAS_OP_N, 32, 32, 32, CUDA_R_32F, CUDA_R_32F, CUDA_R_32F, CUDA_R_32F, "


def test_default_run_prints_header_and_two_identical_lines(make_backend) -> None:
    backend = make_backend(major=6)
    out = io.StringIO()

    results = run_sweep(RunConfig(), backend, out=out)

    lines = out.getvalue().splitlines()
    assert lines[0] == header_line()
    assert len(lines) == 3
    assert lines[1] == lines[2]
    assert lines[1] == PREFIX_32F + "NA, NA, CUBLAS_GEMM_DEFAULT, 1, 0.065536"
    assert [r.family for r in results] == ["general"]


def test_header_columns() -> None:
    assert header_line() == (
        "device, op(A), op(B), m, n, k, Atype, Btype, Ctype, ComputeType, Dp4aRestrictions(lda.ldb), "
        "TensorCoreRestrictions(m.k.A.B.C.lda.ldb.ldc), algo, time(ms), GFLOPS"
    )


def test_tensor_sweep_requires_volta_or_newer(make_backend) -> None:
    backend = make_backend(major=7, minor=0)
    out = io.StringIO()

    results = run_sweep(RunConfig(), backend, out=out)

    lines = out.getvalue().splitlines()
    assert len(lines) == 5
    assert [r.family for r in results] == ["general", "tensor"]
    assert lines[3] == PREFIX_32F + "NA, all meet, CUBLAS_GEMM_DEFAULT_TENSOR_OP, 1, 0.065536"
    assert backend.calls == [-1, 99]


def test_first_and_best_lines(make_backend) -> None:
    backend = make_backend(elapsed_ms=[4.0, 2.0, 1.0])
    out = io.StringIO()

    run_sweep(RunConfig(algos=(0, 1, 2)), backend, out=out)

    lines = out.getvalue().splitlines()
    assert lines[1].endswith("CUBLAS_GEMM_ALGO0, 4, 0.016384")
    assert lines[2].endswith("CUBLAS_GEMM_ALGO2, 1, 0.065536")


def test_all_rejected_sweep_prints_nan(make_backend) -> None:
    backend = make_backend(statuses={-1: CUBLAS_STATUS_NOT_SUPPORTED})
    out = io.StringIO()

    run_sweep(RunConfig(), backend, out=out)

    lines = out.getvalue().splitlines()
    assert lines[1].endswith("CUBLAS_GEMM_DEFAULT, nan, nan")
    assert lines[2] == lines[1]


def test_quantized_combo_renders_dp4a_column(make_backend) -> None:
    backend = make_backend()
    out = io.StringIO()

    run_sweep(RunConfig(m=30, types=(1,)), backend, out=out)

    line = out.getvalue().splitlines()[1]
    assert "CUDA_R_8I, CUDA_R_8I, CUDA_R_32I, CUDA_R_32I, 0.1., NA, " in line


def test_buffers_sized_per_storage_type_and_freed(make_backend) -> None:
    backend = make_backend()
    problem = ProblemSpec(m=64, n=16, k=32)
    combo = TYPE_COMBINATIONS[3]

    run_sweep(RunConfig(m=64, n=16, k=32, types=(3, 5)), backend, out=io.StringIO())

    assert buffer_sizes(problem, combo) == (64 * 32 * 1, 32 * 16 * 1, 64 * 16 * 4)
    assert sorted(backend.allocated.values())[:2] == [512, 2048]
    assert sorted(backend.freed) == sorted(backend.allocated)


def test_allocation_failure_frees_earlier_buffers(make_backend) -> None:
    backend = make_backend()
    backend.fail_allocate_after = 2
    out = io.StringIO()

    with pytest.raises(RuntimeApiError) as exc:
        run_sweep(RunConfig(), backend, out=out)

    assert exc.value.call == "cudaMalloc"
    assert "cudaErrorMemoryAllocation" in str(exc.value)
    assert sorted(backend.freed) == sorted(backend.allocated)
    assert len(backend.freed) == 2
    assert out.getvalue().splitlines() == [header_line()]


def test_zero_elapsed_time_prints_infinite_throughput(make_backend) -> None:
    out = io.StringIO()

    run_sweep(RunConfig(), make_backend(default_elapsed_ms=0.0), out=out)

    assert out.getvalue().splitlines()[1].endswith("CUBLAS_GEMM_DEFAULT, 0, inf")


def test_free_failure_still_frees_remaining_buffers(make_backend) -> None:
    backend = make_backend()
    backend.fail_free = True

    with pytest.raises(RuntimeApiError) as exc:
        run_sweep(RunConfig(), backend, out=io.StringIO())

    assert exc.value.call == "cudaFree"
    assert sorted(backend.freed) == sorted(backend.allocated)


def test_free_failure_does_not_mask_sweep_error(make_backend) -> None:
    backend = make_backend()
    backend.fail_timer_start = True
    backend.fail_free = True

    with pytest.raises(RuntimeApiError) as exc:
        run_sweep(RunConfig(), backend, out=io.StringIO())

    assert exc.value.call == "cudaEventRecord(start)"
    assert len(backend.freed) == 3
