from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

from landmark3d.core.distortion import BrownDistortion


@runtime_checkable
class Calibration(Protocol):
    """
    Intrinsics capability used by the triangulation code.

    `uncalibrate` maps a normalized image point (x=X/Z, y=Y/Z) to pixels; with
    `jacobian=True` it also returns d(uv)/d(xy) as a (2,2) array.
    """

    def K(self) -> np.ndarray: ...

    def uncalibrate(self, xy: np.ndarray, jacobian: bool = False): ...

    def calibrate(self, uv: np.ndarray) -> np.ndarray: ...


def _k_matrix(fx: float, fy: float, s: float, u0: float, v0: float) -> np.ndarray:
    return np.array(
        [[float(fx), float(s), float(u0)], [0.0, float(fy), float(v0)], [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )


@dataclass(frozen=True)
class CalibrationK:
    """Linear pinhole intrinsics: focal lengths, skew and principal point (pixels)."""

    fx: float = 1.0
    fy: float = 1.0
    s: float = 0.0
    u0: float = 0.0
    v0: float = 0.0

    @classmethod
    def from_matrix(cls, K: np.ndarray) -> "CalibrationK":
        K = np.asarray(K, dtype=np.float64).reshape(3, 3)
        return cls(fx=float(K[0, 0]), fy=float(K[1, 1]), s=float(K[0, 1]), u0=float(K[0, 2]), v0=float(K[1, 2]))

    @classmethod
    def from_fov(cls, fov_deg: float, width_px: int, height_px: int) -> "CalibrationK":
        """Square pixels, principal point at the image center, horizontal field of view."""
        f = float(0.5 * width_px / np.tan(0.5 * np.deg2rad(float(fov_deg))))
        return cls(fx=f, fy=f, s=0.0, u0=0.5 * width_px, v0=0.5 * height_px)

    def K(self) -> np.ndarray:
        return _k_matrix(self.fx, self.fy, self.s, self.u0, self.v0)

    def uncalibrate(self, xy: np.ndarray, jacobian: bool = False):
        xy = np.asarray(xy, dtype=np.float64).reshape(2)
        x, y = float(xy[0]), float(xy[1])
        uv = np.array([self.fx * x + self.s * y + self.u0, self.fy * y + self.v0], dtype=np.float64)
        if not jacobian:
            return uv
        return uv, np.array([[self.fx, self.s], [0.0, self.fy]], dtype=np.float64)

    def calibrate(self, uv: np.ndarray) -> np.ndarray:
        uv = np.asarray(uv, dtype=np.float64).reshape(2)
        y = (uv[1] - self.v0) / self.fy
        x = (uv[0] - self.u0 - self.s * y) / self.fx
        return np.array([x, y], dtype=np.float64)


@dataclass(frozen=True)
class CalibrationBrown:
    """
    Pinhole intrinsics with Brown-Conrady lens distortion.

    `K()` is the linear part only; distortion is applied in normalized
    coordinates before the affine pixel mapping.
    """

    fx: float
    fy: float
    u0: float
    v0: float
    s: float = 0.0
    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0

    def K(self) -> np.ndarray:
        return _k_matrix(self.fx, self.fy, self.s, self.u0, self.v0)

    def distortion(self) -> BrownDistortion:
        return BrownDistortion(k1=self.k1, k2=self.k2, p1=self.p1, p2=self.p2, k3=self.k3)

    def linear(self) -> CalibrationK:
        return CalibrationK(fx=self.fx, fy=self.fy, s=self.s, u0=self.u0, v0=self.v0)

    def uncalibrate(self, xy: np.ndarray, jacobian: bool = False):
        xy = np.asarray(xy, dtype=np.float64).reshape(2)
        dist = self.distortion()
        xd, yd = dist.distort(xy[0], xy[1])
        lin = self.linear()
        if not jacobian:
            return lin.uncalibrate(np.array([xd, yd]))
        uv, J_lin = lin.uncalibrate(np.array([xd, yd]), jacobian=True)
        return uv, J_lin @ dist.jacobian(xy[0], xy[1])

    def calibrate(self, uv: np.ndarray) -> np.ndarray:
        xd, yd = self.linear().calibrate(uv)
        x, y = self.distortion().undistort(xd, yd, iterations=20)
        return np.array([float(x), float(y)], dtype=np.float64)
