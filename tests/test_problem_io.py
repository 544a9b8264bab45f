import json
from pathlib import Path

import numpy as np
import pytest

from landmark3d.api.problem_io import load_problem, parse_problem, problem_to_dict, save_problem
from landmark3d.core.calibration import CalibrationBrown
from landmark3d.core.distortion import BrownDistortion
from landmark3d.errors import ConfigValidationError
from landmark3d.sim.synthetic import make_synthetic_problem


def test_save_load_preserves_geometry(tmp_path: Path):
    problem = make_synthetic_problem(
        n_views=3, distortion=BrownDistortion(k1=-0.1, p2=0.001), noise_px=0.3, seed=2
    )
    path = save_problem(tmp_path / "p" / "problem.json", problem)
    loaded = load_problem(path)

    assert len(loaded.cameras) == 3
    assert isinstance(loaded.cameras[0].calibration, CalibrationBrown)
    # One calibration table entry, shared by every camera.
    assert loaded.cameras[0].calibration is loaded.cameras[2].calibration
    assert loaded.cameras[0].calibration == problem.cameras[0].calibration
    for a, b in zip(loaded.cameras, problem.cameras):
        assert np.allclose(a.pose.matrix(), b.pose.matrix())
    for a, b in zip(loaded.measurements, problem.measurements):
        assert np.allclose(a, b)
    assert np.allclose(loaded.landmark_gt, problem.landmark_gt)


def test_written_json_has_calibration_table(tmp_path: Path):
    problem = make_synthetic_problem(n_views=2, seed=0)
    data = problem_to_dict(problem)
    assert data["schema_version"] == "landmark3d.problem.v0"
    assert list(data["calibrations"]) == ["cal0"]
    assert data["calibrations"]["cal0"]["model"] == "pinhole"
    assert [v["calibration"] for v in data["views"]] == ["cal0", "cal0"]


def _minimal(**view_overrides):
    view = {"calibration": "cam", "rvec": [0.0, 0.0, 0.0], "t": [0.0, 0.0, 0.0], "uv_px": [10.0, 20.0]}
    view.update(view_overrides)
    return {
        "schema_version": "landmark3d.problem.v0",
        "calibrations": {"cam": {"model": "pinhole", "fx": 500.0, "fy": 500.0, "u0": 320.0, "v0": 240.0}},
        "views": [view],
    }


def test_parse_accepts_rvec_pose():
    problem = parse_problem(_minimal(rvec=[0.0, 0.0, np.pi / 2]))
    assert np.allclose(problem.cameras[0].pose.R @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0])
    assert problem.landmark_gt is None


@pytest.mark.parametrize(
    "data",
    [
        {**_minimal(), "schema_version": "landmark3d.problem.v1"},
        _minimal(calibration="missing"),
        _minimal(uv_px=[1.0]),
        _minimal(t=[0.0, float("nan"), 0.0]),
        {k: v for k, v in _minimal().items() if k != "calibrations"},
    ],
)
def test_parse_rejects_invalid_problems(data):
    with pytest.raises(ConfigValidationError):
        parse_problem(data)


def test_parse_rejects_non_rotation():
    data = _minimal()
    view = dict(data["views"][0])
    del view["rvec"]
    view["R"] = [[2.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    data["views"] = [view]
    with pytest.raises(ConfigValidationError):
        parse_problem(data)


def test_load_reads_json_file(tmp_path: Path):
    path = tmp_path / "problem.json"
    path.write_text(json.dumps(_minimal()), encoding="utf-8")
    assert len(load_problem(path).measurements) == 1
