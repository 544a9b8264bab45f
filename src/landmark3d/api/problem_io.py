from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from landmark3d.core.calibration import Calibration, CalibrationBrown, CalibrationK
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.pose import Pose3
from landmark3d.errors import ConfigValidationError

PROBLEM_SCHEMA = "landmark3d.problem.v0"


@dataclass(frozen=True)
class TriangulationProblem:
    """
    One landmark observed by several cameras.

    `measurements[i]` is the pixel observed by `cameras[i]`.
    """

    cameras: list[PinholeCamera]
    measurements: list[np.ndarray]  # each (2,)
    landmark_gt: np.ndarray | None = None  # (3,)


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigValidationError(msg)


def _finite_vector(x: Any, n: int, name: str) -> np.ndarray:
    _require(isinstance(x, (list, tuple)) and len(x) == n, f"{name} must be a list of {n} numbers")
    v = np.asarray([float(c) for c in x], dtype=np.float64)
    _require(bool(np.all(np.isfinite(v))), f"{name} has non-finite values")
    return v


def calibration_from_dict(d: dict[str, Any]) -> Calibration:
    model = str(d.get("model", "pinhole"))
    for k in ("fx", "fy", "u0", "v0"):
        _require(k in d, f"calibration.{k} is required")
    fx, fy = float(d["fx"]), float(d["fy"])
    _require(fx > 0.0 and fy > 0.0, "calibration fx/fy must be > 0")
    if model == "pinhole":
        return CalibrationK(fx=fx, fy=fy, s=float(d.get("s", 0.0)), u0=float(d["u0"]), v0=float(d["v0"]))
    if model == "brown":
        return CalibrationBrown(
            fx=fx,
            fy=fy,
            u0=float(d["u0"]),
            v0=float(d["v0"]),
            s=float(d.get("s", 0.0)),
            k1=float(d.get("k1", 0.0)),
            k2=float(d.get("k2", 0.0)),
            p1=float(d.get("p1", 0.0)),
            p2=float(d.get("p2", 0.0)),
            k3=float(d.get("k3", 0.0)),
        )
    raise ConfigValidationError(f"unsupported calibration model: {model}")


def calibration_to_dict(cal: Calibration) -> dict[str, Any]:
    if isinstance(cal, CalibrationBrown):
        return {
            "model": "brown",
            "fx": cal.fx,
            "fy": cal.fy,
            "s": cal.s,
            "u0": cal.u0,
            "v0": cal.v0,
            "k1": cal.k1,
            "k2": cal.k2,
            "p1": cal.p1,
            "p2": cal.p2,
            "k3": cal.k3,
        }
    if isinstance(cal, CalibrationK):
        return {"model": "pinhole", "fx": cal.fx, "fy": cal.fy, "s": cal.s, "u0": cal.u0, "v0": cal.v0}
    raise TypeError(f"cannot serialize calibration of type {type(cal).__name__}")


def _pose_from_dict(d: dict[str, Any], name: str) -> Pose3:
    t = _finite_vector(d.get("t"), 3, f"{name}.t")
    if "rvec" in d:
        return Pose3.from_rvec(_finite_vector(d["rvec"], 3, f"{name}.rvec"), t)
    R_raw = d.get("R")
    _require(isinstance(R_raw, (list, tuple)) and len(R_raw) == 3, f"{name}.R must be a 3x3 list")
    R = np.stack([_finite_vector(row, 3, f"{name}.R") for row in R_raw], axis=0)
    _require(bool(np.allclose(R.T @ R, np.eye(3), atol=1e-6)), f"{name}.R must be orthonormal")
    _require(float(np.linalg.det(R)) > 0.0, f"{name}.R must be a proper rotation")
    return Pose3(R=R, t=t)


def parse_problem(data: dict[str, Any]) -> TriangulationProblem:
    _require(data.get("schema_version") == PROBLEM_SCHEMA, f"schema_version must be {PROBLEM_SCHEMA}")

    cal_raw = data.get("calibrations", {})
    _require(isinstance(cal_raw, dict) and len(cal_raw) > 0, "calibrations must be a non-empty object")
    # One instance per name: cameras referencing the same name share it.
    calibrations = {str(name): calibration_from_dict(d) for name, d in cal_raw.items()}

    views = data.get("views", [])
    _require(isinstance(views, list), "views must be a list")
    cameras: list[PinholeCamera] = []
    measurements: list[np.ndarray] = []
    for i, v in enumerate(views):
        name = f"views[{i}]"
        _require(isinstance(v, dict), f"{name} must be an object")
        cal_name = str(v.get("calibration", ""))
        _require(cal_name in calibrations, f"{name}.calibration refers to unknown calibration {cal_name!r}")
        cameras.append(PinholeCamera(pose=_pose_from_dict(v, name), calibration=calibrations[cal_name]))
        measurements.append(_finite_vector(v.get("uv_px"), 2, f"{name}.uv_px"))

    gt = data.get("landmark_gt")
    landmark_gt = None if gt is None else _finite_vector(gt, 3, "landmark_gt")
    return TriangulationProblem(cameras=cameras, measurements=measurements, landmark_gt=landmark_gt)


def load_problem(path: Path) -> TriangulationProblem:
    return parse_problem(json.loads(Path(path).read_text(encoding="utf-8")))


def problem_to_dict(problem: TriangulationProblem) -> dict[str, Any]:
    names: dict[Calibration, str] = {}
    for cam in problem.cameras:
        names.setdefault(cam.calibration, f"cal{len(names)}")

    views = []
    for cam, z in zip(problem.cameras, problem.measurements):
        views.append(
            {
                "calibration": names[cam.calibration],
                "R": np.asarray(cam.pose.R, dtype=np.float64).tolist(),
                "t": np.asarray(cam.pose.t, dtype=np.float64).reshape(3).tolist(),
                "uv_px": np.asarray(z, dtype=np.float64).reshape(2).tolist(),
            }
        )

    out: dict[str, Any] = {
        "schema_version": PROBLEM_SCHEMA,
        "calibrations": {name: calibration_to_dict(cal) for cal, name in names.items()},
        "views": views,
    }
    if problem.landmark_gt is not None:
        out["landmark_gt"] = np.asarray(problem.landmark_gt, dtype=np.float64).reshape(3).tolist()
    return out


def save_problem(path: Path, problem: TriangulationProblem) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(problem_to_dict(problem), indent=2, sort_keys=True), encoding="utf-8")
    return path
