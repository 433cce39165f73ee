import math
from typing import NamedTuple, Sequence

import numpy as np

from .geometry import Point2

# pivots smaller than this are treated as already eliminated
PIVOT_EPSILON = 1e-12


class AffineTransform(NamedTuple):
    """2D affine map ``[[a, c, e], [b, d, f], [0, 0, 1]]``.

    Same coefficient order as ``QTransform(m11, m12, m21, m22, dx, dy)``:
    ``x' = a*x + c*y + e`` and ``y' = b*x + d*y + f``.
    """
    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls(1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

    def apply(self, point) -> Point2:
        x, y = float(point[0]), float(point[1])
        return Point2(self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self)

    def is_invertible(self, eps: float = 1e-9) -> bool:
        return self.is_finite() and abs(self.determinant()) > eps

    def inverted(self) -> "AffineTransform":
        det = self.determinant()
        if not self.is_finite() or det == 0.0:
            raise ValueError("transform is not invertible")
        a, b, c, d = self.d / det, -self.b / det, -self.c / det, self.a / det
        return AffineTransform(a, b, c, d,
                               -(a * self.e + c * self.f),
                               -(b * self.e + d * self.f))

    def to_matrix(self) -> np.ndarray:
        """2x3 float64 matrix in the layout ``cv2.warpAffine`` expects."""
        return np.array([[self.a, self.c, self.e],
                         [self.b, self.d, self.f]], dtype=np.float64)


def solve_affine(src: Sequence, dst: Sequence) -> AffineTransform:
    """Affine transform taking the three ``src`` points onto the three ``dst`` points.

    Solves the 6x6 system with Gauss-Jordan elimination and partial pivoting.
    Collinear source points make the system singular; columns whose best
    pivot is below ``PIVOT_EPSILON`` are skipped instead of raising, so a
    degenerate input still yields a (meaningless) transform. Callers decide
    whether to use it, see ``AffineTransform.is_invertible``.
    """
    if len(src) != 3 or len(dst) != 3:
        raise ValueError("solve_affine needs exactly 3 source and 3 destination points")

    n = 6
    m = np.zeros((n, n + 1), dtype=np.float64)
    for k, (s, t) in enumerate(zip(src, dst)):
        sx, sy = float(s[0]), float(s[1])
        m[2 * k, 0:3] = (sx, sy, 1.0)
        m[2 * k, n] = float(t[0])
        m[2 * k + 1, 3:6] = (sx, sy, 1.0)
        m[2 * k + 1, n] = float(t[1])

    for i in range(n):
        pivot = i + int(np.argmax(np.abs(m[i:, i])))
        if abs(m[pivot, i]) < PIVOT_EPSILON:
            continue
        if pivot != i:
            m[[i, pivot]] = m[[pivot, i]]
        m[i] /= m[i, i]
        for j in range(n):
            if j != i and m[j, i] != 0.0:
                m[j] -= m[j, i] * m[i]

    x = m[:, n]
    # unknowns are ordered (x-row: sx, sy, 1), (y-row: sx, sy, 1)
    return AffineTransform(a=float(x[0]), b=float(x[3]),
                           c=float(x[1]), d=float(x[4]),
                           e=float(x[2]), f=float(x[5]))
