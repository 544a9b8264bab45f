from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from landmark3d.errors import ConfigValidationError

CONFIG_SCHEMA = "landmark3d.config.v0"

# Process-wide default for the cheirality check; read when a Triangulator is built
# and neither its flag nor its config sets one.
DEFAULT_CHECK_CHEIRALITY = False

OptimizerMethod = Literal["lm", "trf"]


@dataclass(frozen=True)
class LMParams:
    """Stopping criteria handed to scipy.optimize.least_squares."""

    method: OptimizerMethod = "lm"
    max_nfev: int = 100
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10


@dataclass(frozen=True)
class TriangulationConfig:
    rank_tol: float = 1e-9
    optimize: bool = False
    check_cheirality: bool | None = None
    lm: LMParams = field(default_factory=LMParams)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def load_triangulation_config(path: Path) -> TriangulationConfig:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_triangulation_config(data)


def parse_triangulation_config(data: dict[str, Any]) -> TriangulationConfig:
    _require(isinstance(data, dict), "config must be a JSON object")
    schema_version = data.get("schema_version", CONFIG_SCHEMA)
    _require(schema_version == CONFIG_SCHEMA, f"schema_version must be {CONFIG_SCHEMA}")

    rank_tol = float(data.get("rank_tol", 1e-9))
    _require(rank_tol >= 0.0, "rank_tol must be >= 0")

    optimize = data.get("optimize", False)
    _require(isinstance(optimize, bool), "optimize must be a boolean")
    check = data.get("check_cheirality")
    _require(check is None or isinstance(check, bool), "check_cheirality must be a boolean or null")

    lm = data.get("lm", {})
    _require(isinstance(lm, dict), "lm must be an object")
    method = str(lm.get("method", "lm"))
    _require(method in ("lm", "trf"), "lm.method must be lm|trf")
    max_nfev = int(lm.get("max_nfev", 100))
    _require(max_nfev >= 1, "lm.max_nfev must be >= 1")
    tols = {k: float(lm.get(k, 1e-10)) for k in ("ftol", "xtol", "gtol")}
    # MINPACK rejects tolerances below machine epsilon.
    _require(all(v >= sys.float_info.epsilon for v in tols.values()), "lm tolerances must be >= machine epsilon")

    return TriangulationConfig(
        rank_tol=rank_tol,
        optimize=optimize,
        check_cheirality=check,
        lm=LMParams(method=method, max_nfev=max_nfev, **tols),  # type: ignore[arg-type]
    )


def config_to_dict(cfg: TriangulationConfig) -> dict[str, Any]:
    return {
        "schema_version": CONFIG_SCHEMA,
        "rank_tol": float(cfg.rank_tol),
        "optimize": bool(cfg.optimize),
        "check_cheirality": cfg.check_cheirality,
        "lm": {
            "method": cfg.lm.method,
            "max_nfev": int(cfg.lm.max_nfev),
            "ftol": float(cfg.lm.ftol),
            "xtol": float(cfg.lm.xtol),
            "gtol": float(cfg.lm.gtol),
        },
    }
