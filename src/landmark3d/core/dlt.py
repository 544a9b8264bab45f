from __future__ import annotations

from typing import Sequence

import numpy as np

from landmark3d.errors import TriangulationUnderconstrainedError


def dlt_design_matrix(projection_matrices: Sequence[np.ndarray], measurements: Sequence[np.ndarray]) -> np.ndarray:
    """
    Stack two rows per view into A (2n,4) so that A @ X = 0 for the homogeneous point X.

    For pixel (u,v) and projection matrix P with rows p1,p2,p3:
      u p3 - p1
      v p3 - p2
    """
    rows: list[np.ndarray] = []
    for P, z in zip(projection_matrices, measurements):
        P = np.asarray(P, dtype=np.float64).reshape(3, 4)
        u, v = (float(c) for c in np.asarray(z, dtype=np.float64).reshape(2))
        rows.append(u * P[2] - P[0])
        rows.append(v * P[2] - P[1])
    return np.stack(rows, axis=0)


def triangulate_homogeneous_dlt(
    projection_matrices: Sequence[np.ndarray],
    measurements: Sequence[np.ndarray],
    rank_tol: float = 1e-9,
) -> np.ndarray:
    """
    DLT triangulation (Hartley & Zisserman, 2nd ed., p. 312).

    Returns the homogeneous point (4,), the right singular vector of the
    smallest singular value. Raises TriangulationUnderconstrainedError when
    fewer than three singular values exceed `rank_tol`.
    """
    A = dlt_design_matrix(projection_matrices, measurements)
    _u, s, vt = np.linalg.svd(A)
    rank = int(np.count_nonzero(s > float(rank_tol)))
    if rank < 3:
        raise TriangulationUnderconstrainedError(f"DLT system has rank {rank} < 3 (rank_tol={rank_tol:g})")
    return vt[-1].copy()


def triangulate_dlt(
    projection_matrices: Sequence[np.ndarray],
    measurements: Sequence[np.ndarray],
    rank_tol: float = 1e-9,
) -> np.ndarray:
    X = triangulate_homogeneous_dlt(projection_matrices, measurements, rank_tol=rank_tol)
    return X[:3] / X[3]
