from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np

from landmark3d.core.camera import PinholeCamera


@dataclass(frozen=True)
class IsotropicNoise:
    """Diagonal noise model with one sigma for every residual dimension."""

    dim: int
    sigma: float = 1.0

    def __post_init__(self) -> None:
        if self.dim < 1:
            raise ValueError("dim must be >= 1")
        if not self.sigma > 0.0:
            raise ValueError("sigma must be > 0")

    @classmethod
    def unit(cls, dim: int) -> "IsotropicNoise":
        return cls(dim=dim, sigma=1.0)

    def whiten(self, r: np.ndarray) -> np.ndarray:
        return np.asarray(r, dtype=np.float64) / self.sigma


UNIT2 = IsotropicNoise.unit(2)


class Values:
    """Named variable assignment: key -> (3,) point."""

    def __init__(self) -> None:
        self._values: dict[str, np.ndarray] = {}

    def insert(self, key: str, value: np.ndarray) -> None:
        if key in self._values:
            raise KeyError(f"key already present: {key}")
        self._values[key] = np.asarray(value, dtype=np.float64).reshape(-1).copy()

    def update(self, key: str, value: np.ndarray) -> None:
        if key not in self._values:
            raise KeyError(f"unknown key: {key}")
        self._values[key] = np.asarray(value, dtype=np.float64).reshape(-1).copy()

    def at(self, key: str) -> np.ndarray:
        return self._values[key].copy()

    def keys(self) -> list[str]:
        return list(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class ReprojectionFactor:
    """
    Residual between the projection of landmark `key` through a fixed camera and a pixel measurement.
    """

    camera: PinholeCamera
    measured: np.ndarray  # (2,)
    key: str
    noise: IsotropicNoise = UNIT2

    def unwhitened_error(self, values: Values) -> np.ndarray:
        return self.camera.project(values.at(self.key)) - np.asarray(self.measured, dtype=np.float64).reshape(2)

    def whitened_error(self, values: Values) -> np.ndarray:
        return self.noise.whiten(self.unwhitened_error(values))

    def whitened_jacobian(self, values: Values) -> np.ndarray:
        _uv, J = self.camera.project(values.at(self.key), jacobian=True)
        return self.noise.whiten(J)

    def error(self, values: Values) -> float:
        r = self.whitened_error(values)
        return 0.5 * float(r @ r)


@dataclass
class FactorGraph:
    factors: list[ReprojectionFactor] = field(default_factory=list)

    def add(self, factor: ReprojectionFactor) -> None:
        self.factors.append(factor)

    def keys(self) -> list[str]:
        seen: dict[str, None] = {}
        for f in self.factors:
            seen.setdefault(f.key, None)
        return list(seen)

    def error(self, values: Values) -> float:
        """Total cost 0.5 * sum ||whitened residual||^2."""
        return float(sum(f.error(values) for f in self.factors))

    def __iter__(self) -> Iterator[ReprojectionFactor]:
        return iter(self.factors)

    def __len__(self) -> int:
        return len(self.factors)


def triangulation_graph(
    cameras: Sequence[PinholeCamera],
    measurements: Sequence[np.ndarray],
    landmark_key: str,
    initial_estimate: np.ndarray,
) -> tuple[FactorGraph, Values]:
    """One landmark variable seeded with `initial_estimate`, one unit-noise reprojection factor per view."""
    values = Values()
    values.insert(landmark_key, initial_estimate)
    graph = FactorGraph()
    for cam, z in zip(cameras, measurements):
        graph.add(
            ReprojectionFactor(
                camera=cam,
                measured=np.asarray(z, dtype=np.float64).reshape(2),
                key=landmark_key,
                noise=UNIT2,
            )
        )
    return graph, values
