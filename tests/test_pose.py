import numpy as np
import pytest

from landmark3d.core.pose import Pose3


def test_transform_to_inverts_transform_from():
    rng = np.random.default_rng(0)
    pose = Pose3.from_rvec(rng.normal(size=3), rng.normal(size=3))
    p = rng.normal(size=(20, 3))
    back = pose.transform_to(pose.transform_from(p))
    assert np.max(np.abs(back - p)) < 1e-12


def test_inverse_matrix_matches_numpy_inverse():
    pose = Pose3.from_rvec(np.array([0.1, -0.4, 0.3]), np.array([1.0, 2.0, -3.0]))
    assert np.allclose(pose.inverse().matrix(), np.linalg.inv(pose.matrix()), atol=1e-12)
    assert np.allclose(pose.compose(pose.inverse()).matrix(), np.eye(4), atol=1e-12)


def test_rvec_roundtrip():
    rvec = np.array([0.2, 0.1, -0.7])
    pose = Pose3.from_rvec(rvec, np.zeros(3))
    assert np.allclose(pose.rvec(), rvec, atol=1e-12)


def test_look_at_puts_target_on_optical_axis():
    eye = np.array([100.0, -500.0, 50.0])
    target = np.array([10.0, 20.0, -5.0])
    pose = Pose3.look_at(eye, target)
    local = pose.transform_to(target)
    assert abs(local[0]) < 1e-9
    assert abs(local[1]) < 1e-9
    assert local[2] == pytest.approx(np.linalg.norm(target - eye))
    assert np.linalg.det(pose.R) == pytest.approx(1.0)
    # World up is image-up, i.e. negative local y.
    above = pose.transform_to(target + np.array([0.0, 0.0, 10.0]))
    assert above[1] < 0.0


def test_look_at_rejects_degenerate_up():
    with pytest.raises(ValueError):
        Pose3.look_at(np.zeros(3), np.array([0.0, 0.0, 5.0]), up=np.array([0.0, 0.0, 1.0]))
