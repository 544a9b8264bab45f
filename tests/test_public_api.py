from __future__ import annotations


def test_public_api_exports() -> None:
    import landmark3d as lm

    assert hasattr(lm, "triangulate_point3")
    assert hasattr(lm, "Triangulator")
    assert hasattr(lm, "Pose3")
    assert hasattr(lm, "PinholeCamera")
    assert issubclass(lm.TriangulationUnderconstrainedError, lm.TriangulationError)
    assert issubclass(lm.TriangulationCheiralityError, lm.TriangulationError)
    assert issubclass(lm.RefinementError, lm.TriangulationError)
