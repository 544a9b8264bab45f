from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def _as_rotation(R: np.ndarray) -> np.ndarray:
    R = np.asarray(R, dtype=np.float64).reshape(3, 3)
    if not np.all(np.isfinite(R)):
        raise ValueError("rotation has non-finite entries")
    return R


@dataclass(frozen=True)
class Pose3:
    """
    Rigid transform placing a camera in the world.

    Convention: X_world = R @ X_local + t, so `t` is the camera center in world
    coordinates and the columns of `R` are the camera axes (x right, y down,
    z forward) expressed in the world frame.
    """

    R: np.ndarray  # (3,3)
    t: np.ndarray  # (3,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "R", _as_rotation(self.R))
        object.__setattr__(self, "t", np.asarray(self.t, dtype=np.float64).reshape(3))

    @classmethod
    def identity(cls) -> "Pose3":
        return cls(R=np.eye(3, dtype=np.float64), t=np.zeros((3,), dtype=np.float64))

    @classmethod
    def from_rvec(cls, rvec: np.ndarray, t: np.ndarray) -> "Pose3":
        from scipy.spatial.transform import Rotation as Rot  # type: ignore

        rvec = np.asarray(rvec, dtype=np.float64).reshape(3)
        return cls(R=Rot.from_rotvec(rvec).as_matrix(), t=t)

    @classmethod
    def look_at(cls, eye: np.ndarray, target: np.ndarray, up: np.ndarray | None = None) -> "Pose3":
        """
        Camera at `eye` whose optical (z) axis points at `target`.

        The image y axis points along -up so that `up` appears at the top of the image.
        """
        eye = np.asarray(eye, dtype=np.float64).reshape(3)
        target = np.asarray(target, dtype=np.float64).reshape(3)
        up = np.array([0.0, 0.0, 1.0]) if up is None else np.asarray(up, dtype=np.float64).reshape(3)

        z = target - eye
        nz = np.linalg.norm(z)
        if nz < 1e-12:
            raise ValueError("eye and target coincide")
        z /= nz
        x = np.cross(z, up)
        nx = np.linalg.norm(x)
        if nx < 1e-12:
            raise ValueError("up is parallel to the viewing direction")
        x /= nx
        y = np.cross(z, x)
        return cls(R=np.stack([x, y, z], axis=1), t=eye)

    def rvec(self) -> np.ndarray:
        from scipy.spatial.transform import Rotation as Rot  # type: ignore

        return Rot.from_matrix(self.R).as_rotvec()

    def matrix(self) -> np.ndarray:
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.R
        T[:3, 3] = self.t
        return T

    def inverse(self) -> "Pose3":
        return Pose3(R=self.R.T, t=-self.R.T @ self.t)

    def compose(self, other: "Pose3") -> "Pose3":
        """self * other: apply `other` first, then `self`."""
        return Pose3(R=self.R @ other.R, t=self.R @ other.t + self.t)

    def transform_from(self, p_local: np.ndarray) -> np.ndarray:
        p_local = np.asarray(p_local, dtype=np.float64)
        return p_local @ self.R.T + self.t

    def transform_to(self, p_world: np.ndarray) -> np.ndarray:
        """World -> local. Accepts (3,) or (N,3)."""
        p_world = np.asarray(p_world, dtype=np.float64)
        return (p_world - self.t) @ self.R
