from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from landmark3d.config import LMParams
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.factor_graph import FactorGraph, Values, triangulation_graph
from landmark3d.errors import RefinementError

logger = logging.getLogger(__name__)

LANDMARK_KEY = "p0"


def optimize(
    graph: FactorGraph,
    values: Values,
    landmark_key: str,
    params: LMParams | None = None,
) -> tuple[np.ndarray, dict[str, float]]:
    """
    Minimize the graph's whitened reprojection residuals over the landmark.

    Returns (refined point (3,), diagnostics). Raises RefinementError when the
    solver stops without converging or produces non-finite values.
    """
    from scipy.optimize import least_squares  # type: ignore

    if params is None:
        params = LMParams()
    if len(graph) == 0:
        raise ValueError("factor graph is empty")

    x0 = values.at(landmark_key)
    if not np.all(np.isfinite(x0)):
        raise RefinementError("initial estimate is not finite")

    def fun(p: np.ndarray) -> np.ndarray:
        work = Values()
        work.insert(landmark_key, p)
        return np.concatenate([f.whitened_error(work) for f in graph], axis=0)

    def jac(p: np.ndarray) -> np.ndarray:
        work = Values()
        work.insert(landmark_key, p)
        return np.concatenate([f.whitened_jacobian(work) for f in graph], axis=0)

    sol = least_squares(
        fun,
        x0,
        jac=jac,
        method=params.method,
        ftol=params.ftol,
        xtol=params.xtol,
        gtol=params.gtol,
        max_nfev=int(params.max_nfev),
    )
    diag = {
        "opt_cost_initial": graph.error(values),
        "opt_cost": float(sol.cost),
        "opt_nfev": float(sol.nfev),
        "opt_status": float(sol.status),
        "opt_success": float(bool(sol.success)),
    }
    logger.debug("landmark refinement: %s", diag)

    if not sol.success:
        raise RefinementError(f"nonlinear refinement did not converge: {sol.message}")
    if not np.all(np.isfinite(sol.x)):
        raise RefinementError("nonlinear refinement produced non-finite values")
    return sol.x.copy(), diag


def triangulate_nonlinear(
    cameras: Sequence[PinholeCamera],
    measurements: Sequence[np.ndarray],
    initial_estimate: np.ndarray,
    params: LMParams | None = None,
) -> tuple[np.ndarray, dict[str, float]]:
    graph, values = triangulation_graph(cameras, measurements, LANDMARK_KEY, initial_estimate)
    return optimize(graph, values, LANDMARK_KEY, params)
