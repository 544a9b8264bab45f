from landmark3d.api.problem_io import TriangulationProblem, load_problem, save_problem
from landmark3d.api.triangulation import TriangulationResult, Triangulator, triangulate_point3

__all__ = [
    "TriangulationProblem",
    "TriangulationResult",
    "Triangulator",
    "load_problem",
    "save_problem",
    "triangulate_point3",
]
