from __future__ import annotations

from typing import Sequence

import numpy as np

from landmark3d.api.problem_io import TriangulationProblem
from landmark3d.core.calibration import Calibration, CalibrationBrown, CalibrationK
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.distortion import BrownDistortion
from landmark3d.core.pose import Pose3


def ring_of_cameras(
    n: int,
    *,
    radius_mm: float,
    target: np.ndarray,
    calibration: Calibration,
    height_mm: float = 0.0,
    arc_deg: float = 90.0,
) -> list[PinholeCamera]:
    """
    `n` cameras on a horizontal arc of `arc_deg` degrees around `target`, all looking at it.

    World z is up. All cameras share `calibration`.
    """
    if n < 1:
        raise ValueError("n must be >= 1")
    target = np.asarray(target, dtype=np.float64).reshape(3)
    half = 0.5 * np.deg2rad(float(arc_deg))
    angles = np.linspace(-half, half, int(n)) if n > 1 else np.zeros((1,))
    cams: list[PinholeCamera] = []
    for a in angles:
        # Arc centered on the -y side of the target.
        eye = target + np.array(
            [radius_mm * np.sin(a), -radius_mm * np.cos(a), height_mm], dtype=np.float64
        )
        cams.append(PinholeCamera(pose=Pose3.look_at(eye, target), calibration=calibration))
    return cams


def project_landmark(
    cameras: Sequence[PinholeCamera],
    point: np.ndarray,
    *,
    noise_px: float = 0.0,
    rng: np.random.Generator | None = None,
) -> list[np.ndarray]:
    """Pixel measurement of `point` in every camera, with optional isotropic Gaussian noise."""
    point = np.asarray(point, dtype=np.float64).reshape(3)
    uv = [np.asarray(cam.project(point), dtype=np.float64).reshape(2) for cam in cameras]
    if noise_px > 0.0:
        if rng is None:
            rng = np.random.default_rng()
        uv = [z + rng.normal(scale=float(noise_px), size=(2,)) for z in uv]
    return uv


def make_calibration(
    width_px: int,
    height_px: int,
    *,
    fov_deg: float = 60.0,
    distortion: BrownDistortion | None = None,
) -> Calibration:
    lin = CalibrationK.from_fov(fov_deg, width_px, height_px)
    if distortion is None or distortion.is_identity:
        return lin
    return CalibrationBrown(
        fx=lin.fx,
        fy=lin.fy,
        u0=lin.u0,
        v0=lin.v0,
        s=lin.s,
        k1=distortion.k1,
        k2=distortion.k2,
        p1=distortion.p1,
        p2=distortion.p2,
        k3=distortion.k3,
    )


def make_synthetic_problem(
    *,
    n_views: int = 4,
    radius_mm: float = 2000.0,
    height_mm: float = 300.0,
    arc_deg: float = 90.0,
    width_px: int = 640,
    height_px: int = 480,
    fov_deg: float = 60.0,
    distortion: BrownDistortion | None = None,
    noise_px: float = 0.0,
    seed: int = 0,
) -> TriangulationProblem:
    """
    Random landmark near the origin seen by a ring of cameras sharing one calibration.
    """
    rng = np.random.default_rng(int(seed))
    landmark = rng.uniform(-100.0, 100.0, size=(3,))
    cal = make_calibration(width_px, height_px, fov_deg=fov_deg, distortion=distortion)
    cams = ring_of_cameras(
        n_views,
        radius_mm=radius_mm,
        target=np.zeros((3,), dtype=np.float64),
        calibration=cal,
        height_mm=height_mm,
        arc_deg=arc_deg,
    )
    uv = project_landmark(cams, landmark, noise_px=noise_px, rng=rng)
    return TriangulationProblem(cameras=cams, measurements=uv, landmark_gt=landmark)
