"""
Sanity check: DLT vs. DLT + Levenberg-Marquardt on noisy synthetic rigs.

For each pixel-noise level, triangulate many random landmarks with both
pipelines and report the 3D error and the reprojection RMS. The refined
estimate should never have a larger reprojection error than the DLT one,
and the gap should grow when the shared calibration has lens distortion.
"""
from __future__ import annotations

import numpy as np

from landmark3d.api.triangulation import reprojection_errors, triangulate_point3
from landmark3d.core.distortion import BrownDistortion
from landmark3d.sim.synthetic import make_synthetic_problem


def _rms(x: list[float]) -> float:
    v = np.asarray(x, dtype=np.float64)
    return float(np.sqrt(np.mean(v * v)))


def main():
    trials = 200
    for k1 in (0.0, -0.2):
        dist = BrownDistortion(k1=k1)
        for noise_px in (0.0, 0.25, 1.0, 2.0):
            e3d_dlt, e3d_ref, rp_dlt, rp_ref = [], [], [], []
            worse = 0
            for seed in range(trials):
                problem = make_synthetic_problem(n_views=4, distortion=dist, noise_px=noise_px, seed=seed)
                X_dlt = triangulate_point3(problem.cameras, problem.measurements)
                X_ref = triangulate_point3(problem.cameras, problem.measurements, optimize=True)
                e3d_dlt.append(float(np.linalg.norm(X_dlt - problem.landmark_gt)))
                e3d_ref.append(float(np.linalg.norm(X_ref - problem.landmark_gt)))
                r_dlt = _rms(list(reprojection_errors(problem.cameras, X_dlt, problem.measurements)))
                r_ref = _rms(list(reprojection_errors(problem.cameras, X_ref, problem.measurements)))
                rp_dlt.append(r_dlt)
                rp_ref.append(r_ref)
                if r_ref > r_dlt + 1e-9:
                    worse += 1

            print(
                f"k1={k1:+.2f} noise={noise_px:.2f}px "
                f"3D rms dlt={_rms(e3d_dlt):.4f}mm refined={_rms(e3d_ref):.4f}mm | "
                f"reproj rms dlt={_rms(rp_dlt):.4f}px refined={_rms(rp_ref):.4f}px | "
                f"refined worse in {worse}/{trials}"
            )


if __name__ == "__main__":
    main()
