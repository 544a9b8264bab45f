from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Sequence, Union

import numpy as np

from landmark3d import config as _config
from landmark3d.config import LMParams, TriangulationConfig
from landmark3d.core.calibration import Calibration
from landmark3d.core.camera import PinholeCamera, cameras_from_poses
from landmark3d.core.dlt import triangulate_dlt
from landmark3d.core.optimizer import triangulate_nonlinear
from landmark3d.core.pose import Pose3
from landmark3d.core.projection import projection_matrices
from landmark3d.errors import (
    RefinementError,
    TriangulationCheiralityError,
    TriangulationUnderconstrainedError,
)

View = Union[Pose3, PinholeCamera]
Status = Literal["valid", "underconstrained", "cheirality", "refinement_failed"]


def as_cameras(
    views: Sequence[View], calibration: Calibration | Sequence[Calibration] | None = None
) -> list[PinholeCamera]:
    """
    Normalize views to cameras.

    Cameras carry their own calibration and ignore `calibration`; poses need
    either one shared calibration or one per pose.
    """
    views = list(views)
    if all(isinstance(v, PinholeCamera) for v in views):
        return views  # type: ignore[return-value]
    if not all(isinstance(v, Pose3) for v in views):
        raise TypeError("views must be all Pose3 or all PinholeCamera")
    if calibration is None:
        raise ValueError("poses require a calibration")
    return cameras_from_poses(views, calibration)  # type: ignore[arg-type]


def check_cheirality(point: np.ndarray, cameras: Sequence[PinholeCamera]) -> None:
    """Raise TriangulationCheiralityError unless `point` has positive depth in every camera."""
    for i, cam in enumerate(cameras):
        if not cam.depth(point) > 0.0:
            raise TriangulationCheiralityError(
                f"Triangulated landmark is behind camera {i} (depth {cam.depth(point):.6g})"
            )


def reprojection_errors(
    cameras: Sequence[PinholeCamera], point: np.ndarray, measurements: Sequence[np.ndarray]
) -> np.ndarray:
    """Per-view pixel distance between the projected point and the measurement, shape (n,)."""
    errs = [
        float(np.linalg.norm(cam.project(point) - np.asarray(z, dtype=np.float64).reshape(2)))
        for cam, z in zip(cameras, measurements)
    ]
    return np.asarray(errs, dtype=np.float64)


def triangulate_point3(
    views: Sequence[View],
    measurements: Sequence[np.ndarray],
    calibration: Calibration | Sequence[Calibration] | None = None,
    rank_tol: float = 1e-9,
    optimize: bool = False,
    lm_params: LMParams | None = None,
) -> np.ndarray:
    """
    Triangulate one landmark from >= 2 views with the DLT, optionally refined by
    Levenberg-Marquardt on the reprojection error.

    `views` are either poses (paired with `calibration`) or pinhole cameras.
    The cheirality check follows `landmark3d.config.DEFAULT_CHECK_CHEIRALITY`;
    use a `Triangulator` to fix it per instance.
    Returns the landmark in world coordinates, shape (3,).
    """
    point, _diag = _triangulate(
        views,
        measurements,
        calibration=calibration,
        rank_tol=rank_tol,
        optimize=optimize,
        cheirality=_config.DEFAULT_CHECK_CHEIRALITY,
        lm_params=lm_params,
    )
    return point


def _triangulate(
    views: Sequence[View],
    measurements: Sequence[np.ndarray],
    *,
    calibration: Calibration | Sequence[Calibration] | None,
    rank_tol: float,
    optimize: bool,
    cheirality: bool,
    lm_params: LMParams | None,
) -> tuple[np.ndarray, dict[str, float]]:
    n = len(views)
    if len(measurements) != n:
        raise TriangulationUnderconstrainedError(
            f"got {len(measurements)} measurements for {n} views"
        )
    if n < 2:
        raise TriangulationUnderconstrainedError(f"need at least 2 views, got {n}")

    cameras = as_cameras(views, calibration)
    point = triangulate_dlt(projection_matrices(cameras), measurements, rank_tol=rank_tol)
    if not np.all(np.isfinite(point)):
        # Parallel rays meet at infinity (homogeneous w == 0).
        raise TriangulationUnderconstrainedError("rays do not intersect at a finite point")
    diag: dict[str, float] = {"n_views": float(n)}

    if optimize:
        point, opt_diag = triangulate_nonlinear(cameras, measurements, point, lm_params)
        diag.update(opt_diag)

    if cheirality:
        check_cheirality(point, cameras)

    return point, diag


@dataclass(frozen=True)
class TriangulationResult:
    status: Status
    point: np.ndarray | None = None  # (3,) when status == "valid"
    message: str = ""
    diagnostics: dict[str, float] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return self.status == "valid"


class Triangulator:
    """
    Triangulation with a fixed configuration.

    The cheirality check is chosen once, at construction; it is either applied
    to every call or to none. An explicit flag wins over `config.check_cheirality`,
    and when both are None the process default applies.
    """

    def __init__(self, config: TriangulationConfig | None = None, *, check_cheirality: bool | None = None) -> None:
        if config is None:
            config = TriangulationConfig()
        if check_cheirality is None:
            check_cheirality = config.check_cheirality
        if check_cheirality is None:
            check_cheirality = _config.DEFAULT_CHECK_CHEIRALITY
        self.config = config
        self.check_cheirality = bool(check_cheirality)

    def triangulate(
        self,
        views: Sequence[View],
        measurements: Sequence[np.ndarray],
        calibration: Calibration | Sequence[Calibration] | None = None,
        *,
        rank_tol: float | None = None,
        optimize: bool | None = None,
    ) -> np.ndarray:
        point, _diag = self._run(views, measurements, calibration, rank_tol, optimize)
        return point

    def try_triangulate(
        self,
        views: Sequence[View],
        measurements: Sequence[np.ndarray],
        calibration: Calibration | Sequence[Calibration] | None = None,
        *,
        rank_tol: float | None = None,
        optimize: bool | None = None,
    ) -> TriangulationResult:
        """Like `triangulate`, but reports the failure kind in the result instead of raising."""
        try:
            point, diag = self._run(views, measurements, calibration, rank_tol, optimize)
        except TriangulationUnderconstrainedError as e:
            return TriangulationResult(status="underconstrained", message=str(e))
        except TriangulationCheiralityError as e:
            return TriangulationResult(status="cheirality", message=str(e))
        except RefinementError as e:
            return TriangulationResult(status="refinement_failed", message=str(e))
        return TriangulationResult(status="valid", point=point, diagnostics=diag)

    def _run(
        self,
        views: Sequence[View],
        measurements: Sequence[np.ndarray],
        calibration: Calibration | Sequence[Calibration] | None,
        rank_tol: float | None,
        optimize: bool | None,
    ) -> tuple[np.ndarray, dict[str, float]]:
        return _triangulate(
            views,
            measurements,
            calibration=calibration,
            rank_tol=self.config.rank_tol if rank_tol is None else float(rank_tol),
            optimize=self.config.optimize if optimize is None else bool(optimize),
            cheirality=self.check_cheirality,
            lm_params=self.config.lm,
        )
