from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from landmark3d.core.calibration import Calibration
from landmark3d.core.pose import Pose3


@dataclass(frozen=True)
class PinholeCamera:
    """
    A pose in the world plus intrinsics.

    Several cameras may reference the same (immutable) calibration object.
    """

    pose: Pose3
    calibration: Calibration

    def depth(self, p_world: np.ndarray) -> float:
        return float(self.pose.transform_to(np.asarray(p_world, dtype=np.float64).reshape(3))[2])

    def project(self, p_world: np.ndarray, jacobian: bool = False):
        """
        Project a world point to pixels.

        With `jacobian=True` returns (uv, J) where J = d(uv)/d(p_world), shape (2,3).
        Points at zero depth raise ValueError; points behind the camera are
        projected through the center like any other point.
        """
        p_world = np.asarray(p_world, dtype=np.float64).reshape(3)
        pc = self.pose.transform_to(p_world)
        Z = float(pc[2])
        if abs(Z) < 1e-12:
            raise ValueError("point lies on the camera's principal plane")
        xy = pc[:2] / Z
        if not jacobian:
            return self.calibration.uncalibrate(xy)

        uv, J_cal = self.calibration.uncalibrate(xy, jacobian=True)
        inv_z = 1.0 / Z
        J_proj = np.array(
            [[inv_z, 0.0, -xy[0] * inv_z], [0.0, inv_z, -xy[1] * inv_z]],
            dtype=np.float64,
        )
        # d(pc)/d(p_world) = R^T
        return uv, J_cal @ J_proj @ self.pose.R.T

    def backproject(self, uv: np.ndarray, depth: float) -> np.ndarray:
        xy = self.calibration.calibrate(uv)
        pc = np.array([xy[0] * depth, xy[1] * depth, depth], dtype=np.float64)
        return self.pose.transform_from(pc)


def cameras_from_poses(
    poses: Sequence[Pose3], calibration: Calibration | Sequence[Calibration]
) -> list[PinholeCamera]:
    """
    Pair poses with either one shared calibration or one calibration per pose.
    """
    if isinstance(calibration, (list, tuple)):
        if len(calibration) != len(poses):
            raise ValueError("need one calibration per pose")
        return [PinholeCamera(pose=p, calibration=c) for p, c in zip(poses, calibration)]
    return [PinholeCamera(pose=p, calibration=calibration) for p in poses]
