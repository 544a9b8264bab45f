from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import numpy as np

from landmark3d.api.problem_io import load_problem, save_problem
from landmark3d.api.triangulation import Triangulator, reprojection_errors
from landmark3d.config import TriangulationConfig, load_triangulation_config
from landmark3d.core.distortion import BrownDistortion
from landmark3d.sim.synthetic import make_synthetic_problem


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="landmark3d")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging (optimizer diagnostics).")
    sub = parser.add_subparsers(dest="cmd", required=True)

    syn = sub.add_parser("make-synthetic", help="Write a synthetic single-landmark triangulation problem (JSON).")
    syn.add_argument("--out", type=Path, required=True)
    syn.add_argument("--views", type=int, default=4)
    syn.add_argument("--radius-mm", type=float, default=2000.0, help="Camera distance to the scene center.")
    syn.add_argument("--height-mm", type=float, default=300.0, help="Camera height above the scene center.")
    syn.add_argument("--arc-deg", type=float, default=90.0, help="Angular extent of the camera ring.")
    syn.add_argument("--width", type=int, default=640)
    syn.add_argument("--height", type=int, default=480)
    syn.add_argument("--fov-deg", type=float, default=60.0, help="Horizontal field of view.")
    syn.add_argument("--k1", type=float, default=0.0, help="Radial distortion k1 (0 gives a linear pinhole).")
    syn.add_argument("--k2", type=float, default=0.0, help="Radial distortion k2.")
    syn.add_argument("--noise-px", type=float, default=0.0, help="Gaussian pixel noise sigma (0 disables).")
    syn.add_argument("--seed", type=int, default=0)

    tri = sub.add_parser("triangulate", help="Triangulate the landmark of a problem file and print a JSON report.")
    tri.add_argument("problem", type=Path)
    tri.add_argument("--config", type=Path, default=None, help="landmark3d.config.v0 JSON file.")
    tri.add_argument("--refine", action="store_true", help="Levenberg-Marquardt refinement after the DLT.")
    tri.add_argument("--rank-tol", type=float, default=None, help="SVD rank tolerance (default 1e-9).")
    tri.add_argument("--check-cheirality", action="store_true", help="Reject points behind any camera.")
    tri.add_argument("--json", type=Path, default=None, help="Also write the report to this file.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "make-synthetic":
        problem = make_synthetic_problem(
            n_views=args.views,
            radius_mm=args.radius_mm,
            height_mm=args.height_mm,
            arc_deg=args.arc_deg,
            width_px=args.width,
            height_px=args.height,
            fov_deg=args.fov_deg,
            distortion=BrownDistortion(k1=args.k1, k2=args.k2),
            noise_px=args.noise_px,
            seed=args.seed,
        )
        path = save_problem(args.out, problem)
        print(f"Wrote {path}")
        return 0

    if args.cmd == "triangulate":
        report = run_triangulate(
            args.problem,
            config_path=args.config,
            refine=args.refine,
            rank_tol=args.rank_tol,
            check_cheirality=args.check_cheirality,
        )
        text = json.dumps(report, indent=2, sort_keys=True)
        print(text)
        if args.json is not None:
            args.json.parent.mkdir(parents=True, exist_ok=True)
            args.json.write_text(text, encoding="utf-8")
        return 0 if report["status"] == "valid" else 2

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


def run_triangulate(
    problem_path: Path,
    *,
    config_path: Path | None = None,
    refine: bool = False,
    rank_tol: float | None = None,
    check_cheirality: bool = False,
) -> dict[str, Any]:
    cfg = load_triangulation_config(config_path) if config_path is not None else TriangulationConfig()
    # Command-line switches only ever enable; they never turn off what the config file enables.
    cfg = replace(
        cfg,
        optimize=cfg.optimize or bool(refine),
        check_cheirality=True if check_cheirality else cfg.check_cheirality,
        rank_tol=cfg.rank_tol if rank_tol is None else float(rank_tol),
    )

    problem = load_problem(problem_path)
    tri = Triangulator(cfg)
    result = tri.try_triangulate(problem.cameras, problem.measurements)

    report: dict[str, Any] = {
        "problem": str(problem_path),
        "status": result.status,
        "n_views": len(problem.cameras),
        "optimize": cfg.optimize,
        "check_cheirality": tri.check_cheirality,
    }
    if not result.valid:
        report["message"] = result.message
        return report

    assert result.point is not None
    report["point"] = [float(c) for c in result.point]
    try:
        err = reprojection_errors(problem.cameras, result.point, problem.measurements)
    except ValueError as e:
        # Possible when the cheirality check is off and the point sits on a principal plane.
        report["reproj_rms_px"] = None
        report["reproj_max_px"] = None
        report["reproj_message"] = str(e)
    else:
        report["reproj_rms_px"] = float(np.sqrt(np.mean(err**2)))
        report["reproj_max_px"] = float(np.max(err))
    report["diagnostics"] = result.diagnostics
    if problem.landmark_gt is not None:
        report["error_to_gt"] = float(np.linalg.norm(result.point - problem.landmark_gt))
    return report


if __name__ == "__main__":
    raise SystemExit(main())
