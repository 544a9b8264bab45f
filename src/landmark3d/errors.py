from __future__ import annotations


class TriangulationError(RuntimeError):
    """Base class for failures that abort a triangulation call."""


class TriangulationUnderconstrainedError(TriangulationError):
    """Fewer than two views, or the stacked DLT system has rank < 3."""

    def __init__(self, msg: str = "Triangulation underconstrained") -> None:
        super().__init__(msg)


class TriangulationCheiralityError(TriangulationError):
    def __init__(self, msg: str = "Triangulated landmark is behind one or more cameras") -> None:
        super().__init__(msg)


class RefinementError(TriangulationError):
    """The nonlinear optimizer did not converge to a finite landmark."""


class ConfigValidationError(ValueError):
    pass
