from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attrs
from jsonschema import Draft202012Validator

from .config import DEFAULT_TYPE_INDEX, ProblemSpec
from .errors import ConfigurationError


def _int_tuple(v: Any) -> tuple[int, ...]:
    return tuple(int(x) for x in v)


@attrs.define(frozen=True, slots=True)
class RunConfig:
    m: int = 32
    n: int = 32
    k: int = 32
    trans_a: bool = False
    trans_b: bool = False
    device: int = 0
    loop: int = 1
    types: tuple[int, ...] = attrs.field(default=(DEFAULT_TYPE_INDEX,), converter=_int_tuple)
    algos: tuple[int, ...] = attrs.field(default=(), converter=_int_tuple)
    tensor_algos: tuple[int, ...] = attrs.field(default=(), converter=_int_tuple)
    all_algo: bool = False
    log_level: str = "warning"

    @property
    def problem(self) -> ProblemSpec:
        return ProblemSpec(
            m=self.m,
            n=self.n,
            k=self.k,
            trans_a="CUBLAS_OP_T" if self.trans_a else "CUBLAS_OP_N",
            trans_b="CUBLAS_OP_T" if self.trans_b else "CUBLAS_OP_N",
        )

    def to_dict(self) -> dict[str, Any]:
        return attrs.asdict(self)


def default_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "run_config.schema.json"


def validate_run_config(data: Mapping[str, Any], *, schema_path: Path | None = None) -> None:
    schema_path = default_schema_path() if schema_path is None else schema_path
    schema = json.loads(schema_path.read_text())
    errors = sorted(Draft202012Validator(schema).iter_errors(dict(data)), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        details = "; ".join(f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}" for e in errors)
        raise ConfigurationError(f"Invalid run configuration: {details}")


def load_run_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Run config not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Run config {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Run config {path} must contain a JSON object")
    validate_run_config(data)
    return data


def build_run_config(*, file_values: Mapping[str, Any] | None = None, overrides: Mapping[str, Any] | None = None) -> RunConfig:
    """Merge defaults <- config file <- explicit CLI values and validate the result.

    `None` values in `overrides` mean "not given on the command line".
    """
    merged = RunConfig().to_dict()
    merged.update(file_values or {})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    for key in ("types", "algos", "tensor_algos"):
        if isinstance(merged.get(key), tuple):
            merged[key] = list(merged[key])
    validate_run_config(merged)

    return RunConfig(**merged)
