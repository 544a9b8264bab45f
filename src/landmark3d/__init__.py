from landmark3d.api import (
    TriangulationProblem,
    TriangulationResult,
    Triangulator,
    load_problem,
    save_problem,
    triangulate_point3,
)
from landmark3d.core.calibration import CalibrationBrown, CalibrationK
from landmark3d.core.camera import PinholeCamera
from landmark3d.core.pose import Pose3
from landmark3d.errors import (
    RefinementError,
    TriangulationCheiralityError,
    TriangulationError,
    TriangulationUnderconstrainedError,
)

__all__ = [
    "Pose3",
    "CalibrationK",
    "CalibrationBrown",
    "PinholeCamera",
    "triangulate_point3",
    "Triangulator",
    "TriangulationResult",
    "TriangulationProblem",
    "load_problem",
    "save_problem",
    "TriangulationError",
    "TriangulationUnderconstrainedError",
    "TriangulationCheiralityError",
    "RefinementError",
]
