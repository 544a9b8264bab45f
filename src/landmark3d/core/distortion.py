from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BrownDistortion:
    """
    Brown-Conrady distortion on normalized camera coordinates (x=X/Z, y=Y/Z).

    Parameters follow common OpenCV naming:
      radial: k1, k2, k3
      tangential: p1, p2
    """

    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self.k1 == 0.0 and self.k2 == 0.0 and self.p1 == 0.0 and self.p2 == 0.0 and self.k3 == 0.0

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r2 = x * x + y * y
        r4 = r2 * r2
        r6 = r4 * r2
        radial = 1.0 + self.k1 * r2 + self.k2 * r4 + self.k3 * r6
        x2 = x * x
        y2 = y * y
        xy = x * y
        x_tan = 2.0 * self.p1 * xy + self.p2 * (r2 + 2.0 * x2)
        y_tan = self.p1 * (r2 + 2.0 * y2) + 2.0 * self.p2 * xy
        xd = x * radial + x_tan
        yd = y * radial + y_tan
        return xd, yd

    def jacobian(self, x: float, y: float) -> np.ndarray:
        """
        Derivative of distort() at a single normalized point, shape (2,2):
        [[dxd/dx, dxd/dy], [dyd/dx, dyd/dy]].
        """
        x = float(x)
        y = float(y)
        r2 = x * x + y * y
        r4 = r2 * r2
        radial = 1.0 + self.k1 * r2 + self.k2 * r4 + self.k3 * r4 * r2
        # d(radial)/d(r2), then chain through dr2/dx = 2x and dr2/dy = 2y.
        g = self.k1 + 2.0 * self.k2 * r2 + 3.0 * self.k3 * r4
        drdx = 2.0 * x * g
        drdy = 2.0 * y * g
        dxd_dx = radial + x * drdx + 2.0 * self.p1 * y + 6.0 * self.p2 * x
        dxd_dy = x * drdy + 2.0 * self.p1 * x + 2.0 * self.p2 * y
        dyd_dx = y * drdx + 2.0 * self.p1 * x + 2.0 * self.p2 * y
        dyd_dy = radial + y * drdy + 6.0 * self.p1 * y + 2.0 * self.p2 * x
        return np.array([[dxd_dx, dxd_dy], [dyd_dx, dyd_dy]], dtype=np.float64)

    def undistort(self, xd: np.ndarray, yd: np.ndarray, iterations: int = 7) -> tuple[np.ndarray, np.ndarray]:
        """
        Iterative inverse of distort() for small/moderate distortion.
        """
        xd = np.asarray(xd, dtype=np.float64)
        yd = np.asarray(yd, dtype=np.float64)
        x = xd.copy()
        y = yd.copy()
        for _ in range(int(iterations)):
            x_est, y_est = self.distort(x, y)
            x += xd - x_est
            y += yd - y_est
        return x, y
