from __future__ import annotations

from typing import Sequence

import numpy as np

from landmark3d.core.calibration import Calibration
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.pose import Pose3


def projection_matrix(calibration: Calibration, pose: Pose3) -> np.ndarray:
    """
    3x4 projection matrix P = K [R|t]^-1 (top three rows of the inverse pose).
    """
    return CameraProjectionMatrix(calibration)(pose)


class CameraProjectionMatrix:
    """Projection matrices for many poses sharing one calibration (K evaluated once)."""

    def __init__(self, calibration: Calibration) -> None:
        self._K = np.asarray(calibration.K(), dtype=np.float64).reshape(3, 3)

    def __call__(self, pose: Pose3) -> np.ndarray:
        return self._K @ pose.inverse().matrix()[:3, :]


def projection_matrices(cameras: Sequence[PinholeCamera]) -> list[np.ndarray]:
    """One matrix per camera; cameras sharing a calibration object share one functor."""
    functors: dict[int, CameraProjectionMatrix] = {}
    out = []
    for cam in cameras:
        make_P = functors.get(id(cam.calibration))
        if make_P is None:
            make_P = functors[id(cam.calibration)] = CameraProjectionMatrix(cam.calibration)
        out.append(make_P(cam.pose))
    return out
