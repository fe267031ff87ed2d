from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from cugemm_prof.backends.base import GemmBackend

from .config import DEFAULT_TYPE_INDEX, type_combinations_table
from .errors import ConfigurationError, RuntimeApiError, runtime_api_call
from .log import configure_logging, get_logger
from .run_config import build_run_config, load_run_config_file
from .runner import run_sweep

log = get_logger(__name__)

BackendFactory = Callable[[int], GemmBackend]


def _abs_path(p: str) -> Path:
    return Path(p).expanduser().resolve()


def _cupy_backend(device: int) -> GemmBackend:
    # Imported lazily so --list-types and config errors work without CUDA.
    from cugemm_prof.backends.cupy_backend import CupyGemmBackend

    return CupyGemmBackend(device)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cugemm_prof.gemm_algo_sweep",
        description="Profile cuBLAS GemmEx algorithms for one problem shape across type combinations.",
        epilog=type_combinations_table(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-m", type=int, default=None, help="Rows of op(A) and C (default: 32).")
    parser.add_argument("-n", type=int, default=None, help="Columns of op(B) and C (default: 32).")
    parser.add_argument("-k", type=int, default=None, help="Columns of op(A) and rows of op(B) (default: 32).")
    parser.add_argument("-d", "--device", type=int, default=None, help="CUDA device index (default: 0).")
    parser.add_argument("-l", "--loop", type=int, default=None, help="GemmEx calls per timed window (default: 1).")
    parser.add_argument("--ta", action="store_true", default=None, help="Use op(A) = transpose.")
    parser.add_argument("--tb", action="store_true", default=None, help="Use op(B) = transpose.")
    parser.add_argument(
        "--type",
        dest="types",
        type=int,
        nargs="+",
        default=None,
        help=f"Type combination IDs to profile (default: {DEFAULT_TYPE_INDEX}).",
    )
    parser.add_argument("--algo", dest="algos", type=int, nargs="+", default=None, help="CUDA-core algorithms 0..23.")
    parser.add_argument(
        "--tensor-algo",
        "--tensor_algo",
        dest="tensor_algos",
        type=int,
        nargs="+",
        default=None,
        help="Tensor-op algorithms 0..15.",
    )
    parser.add_argument(
        "--all-algo", "--all_algo", action="store_true", default=None, help="Sweep every algorithm of both families."
    )
    parser.add_argument("--list-types", action="store_true", help="Print the type combination table and exit.")
    parser.add_argument("--config", type=_abs_path, default=None, help="JSON run config; explicit flags override it.")
    parser.add_argument(
        "--log-level", default=None, choices=["debug", "info", "warning", "error", "critical"], help="Log level (stderr)."
    )
    return parser


def _overrides(ns: argparse.Namespace) -> dict[str, Any]:
    return {
        "m": ns.m,
        "n": ns.n,
        "k": ns.k,
        "device": ns.device,
        "loop": ns.loop,
        "trans_a": ns.ta,
        "trans_b": ns.tb,
        "types": ns.types,
        "algos": ns.algos,
        "tensor_algos": ns.tensor_algos,
        "all_algo": ns.all_algo,
        "log_level": ns.log_level,
    }


def main(argv: list[str] | None = None, *, backend_factory: BackendFactory | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    if ns.list_types:
        print(type_combinations_table())
        return 0

    try:
        file_values = load_run_config_file(ns.config) if ns.config is not None else None
        config = build_run_config(file_values=file_values, overrides=_overrides(ns))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)
    log.debug("Run config: %s", config.to_dict())

    factory = _cupy_backend if backend_factory is None else backend_factory
    try:
        backend = runtime_api_call("cudaSetDevice", factory, config.device)
    except RuntimeApiError as e:
        print(str(e), file=sys.stderr)
        return 1

    rc = 0
    try:
        run_sweep(config, backend, out=sys.stdout)
    except RuntimeApiError as e:
        sys.stdout.flush()
        print(str(e), file=sys.stderr)
        rc = 1
    finally:
        try:
            runtime_api_call("cublasDestroy", backend.close)
        except RuntimeApiError as e:
            print(str(e), file=sys.stderr)
            rc = 1
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
