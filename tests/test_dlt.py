import numpy as np
import pytest

from landmark3d.core.calibration import CalibrationK
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.dlt import dlt_design_matrix, triangulate_dlt, triangulate_homogeneous_dlt
from landmark3d.core.pose import Pose3
from landmark3d.core.projection import projection_matrices
from landmark3d.errors import TriangulationUnderconstrainedError


def _two_view_rig():
    cal = CalibrationK()
    cams = [
        PinholeCamera(pose=Pose3.identity(), calibration=cal),
        PinholeCamera(pose=Pose3(R=np.eye(3), t=np.array([1.0, 0.0, 0.0])), calibration=cal),
    ]
    return cams


def test_design_matrix_has_two_rows_per_view():
    cams = _two_view_rig()
    z = [np.array([0.0, 0.0]), np.array([-0.2, 0.0])]
    A = dlt_design_matrix(projection_matrices(cams), z)
    assert A.shape == (4, 4)
    X = np.array([0.0, 0.0, 5.0, 1.0])
    assert np.allclose(A @ X, 0.0)


def test_homogeneous_solution_is_unit_null_vector():
    cams = _two_view_rig()
    z = [np.array([0.0, 0.0]), np.array([-0.2, 0.0])]
    X = triangulate_homogeneous_dlt(projection_matrices(cams), z)
    assert X.shape == (4,)
    assert np.linalg.norm(X) == pytest.approx(1.0)
    assert np.allclose(X[:3] / X[3], [0.0, 0.0, 5.0], atol=1e-9)


def test_dlt_recovers_point_from_many_views():
    rng = np.random.default_rng(0)
    cal = CalibrationK(fx=800.0, fy=800.0, u0=320.0, v0=240.0)
    target = np.array([12.0, -7.0, 3.0])
    cams = []
    for _ in range(6):
        eye = rng.uniform(-1000.0, 1000.0, size=3) + np.array([0.0, 0.0, 1500.0])
        cams.append(PinholeCamera(pose=Pose3.look_at(eye, np.zeros(3)), calibration=cal))
    z = [cam.project(target) for cam in cams]
    X = triangulate_dlt(projection_matrices(cams), z)
    assert np.linalg.norm(X - target) < 1e-6


def test_coincident_cameras_are_rank_deficient():
    cal = CalibrationK()
    cams = [PinholeCamera(pose=Pose3.identity(), calibration=cal)] * 2
    z = [np.array([0.1, 0.2])] * 2
    with pytest.raises(TriangulationUnderconstrainedError):
        triangulate_dlt(projection_matrices(cams), z)


def test_rays_through_one_center_are_rank_deficient():
    # Same optical center, different orientations: every ray passes through the center.
    cal = CalibrationK(fx=500.0, fy=500.0, u0=250.0, v0=250.0)
    center = np.array([0.0, -100.0, 0.0])
    cams = [
        PinholeCamera(pose=Pose3.look_at(center, np.array([0.0, 0.0, 0.0])), calibration=cal),
        PinholeCamera(pose=Pose3.look_at(center, np.array([10.0, 0.0, 5.0])), calibration=cal),
    ]
    X = np.array([2.0, 0.0, 1.0])
    z = [cam.project(X) for cam in cams]
    with pytest.raises(TriangulationUnderconstrainedError):
        triangulate_dlt(projection_matrices(cams), z, rank_tol=1e-6)


def test_rank_tol_controls_rank_decision():
    cams = _two_view_rig()
    z = [np.array([0.0, 0.0]), np.array([-0.2, 0.0])]
    with pytest.raises(TriangulationUnderconstrainedError):
        triangulate_dlt(projection_matrices(cams), z, rank_tol=10.0)
