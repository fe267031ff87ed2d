"""Error taxonomy for the GEMM algorithm sweep.

Three buckets are distinguished:

- benign reject: the backend declined the algorithm for this shape/type
  (`CUBLAS_STATUS_NOT_SUPPORTED`, `CUBLAS_STATUS_INVALID_VALUE`);
- fatal backend: any other non-success GemmEx status inside the repeat loop;
- fatal infrastructure: a failing runtime call outside the repeat loop
  (device selection, allocation, timers). These raise `RuntimeApiError` and
  end the run.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Literal, TypeVar

GemmOutcome = Literal["success", "rejected", "fatal"]

T = TypeVar("T")

CUBLAS_STATUS_SUCCESS = 0
CUBLAS_STATUS_INVALID_VALUE = 7
CUBLAS_STATUS_NOT_SUPPORTED = 15

CUBLAS_STATUS_NAMES: dict[int, str] = {
    0: "CUBLAS_STATUS_SUCCESS",
    1: "CUBLAS_STATUS_NOT_INITIALIZED",
    3: "CUBLAS_STATUS_ALLOC_FAILED",
    7: "CUBLAS_STATUS_INVALID_VALUE",
    8: "CUBLAS_STATUS_ARCH_MISMATCH",
    11: "CUBLAS_STATUS_MAPPING_ERROR",
    13: "CUBLAS_STATUS_EXECUTION_FAILED",
    14: "CUBLAS_STATUS_INTERNAL_ERROR",
    15: "CUBLAS_STATUS_NOT_SUPPORTED",
    16: "CUBLAS_STATUS_LICENSE_ERROR",
}

BENIGN_REJECT_STATUSES: frozenset[int] = frozenset({CUBLAS_STATUS_NOT_SUPPORTED, CUBLAS_STATUS_INVALID_VALUE})


def status_name(status: int) -> str:
    return CUBLAS_STATUS_NAMES.get(status, f"CUBLAS_STATUS_UNKNOWN({status})")


def classify_status(status: int) -> GemmOutcome:
    if status == CUBLAS_STATUS_SUCCESS:
        return "success"
    if status in BENIGN_REJECT_STATUSES:
        return "rejected"
    return "fatal"


class GemmProfError(Exception):
    """Base exception for the sweep."""


class ConfigurationError(GemmProfError):
    """Raised when the run configuration is malformed."""


class BackendError(GemmProfError):
    """Raised by backend implementations when a runtime/handle call fails."""

    def __init__(self, status: str):
        super().__init__(status)
        self.status = status


class RuntimeApiError(GemmProfError):
    """Unrecoverable failure of a runtime call outside the profiling repeat loop."""

    def __init__(self, *, call: str, status: str, location: str):
        super().__init__(f"{location}: error: function {call} failed with error {status}.")
        self.call = call
        self.status = status
        self.location = location


def call_site(depth: int = 1) -> str:
    """Return `file:line` of the frame `depth` levels above the caller."""
    frame = sys._getframe(depth + 1)
    return f"{Path(frame.f_code.co_filename).name}:{frame.f_lineno}"


def runtime_api_call(call: str, fn: Callable[..., T], *args: object) -> T:
    """Invoke a backend runtime call, turning `BackendError` into `RuntimeApiError`.

    The raised error carries the caller's file and line so the diagnostic points at
    the failing call site rather than at this helper.
    """
    try:
        return fn(*args)
    except BackendError as e:
        raise RuntimeApiError(call=call, status=e.status, location=call_site()) from e
