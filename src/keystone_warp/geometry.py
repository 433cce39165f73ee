import math
from typing import Iterator, List, NamedTuple, Tuple


class Point2(NamedTuple):
    x: float
    y: float


class Quad(NamedTuple):
    """Four corners in fixed winding: top-left, top-right, bottom-right, bottom-left."""
    top_left: Point2
    top_right: Point2
    bottom_right: Point2
    bottom_left: Point2

    @classmethod
    def identity(cls) -> "Quad":
        return cls(Point2(0.0, 0.0), Point2(1.0, 0.0), Point2(1.0, 1.0), Point2(0.0, 1.0))

    @classmethod
    def from_points(cls, points) -> "Quad":
        pts = [Point2(float(p[0]), float(p[1])) for p in points]
        if len(pts) != 4:
            raise ValueError(f"a quad needs exactly 4 points, got {len(pts)}")
        return cls(*pts)

    def to_pixels(self, width: float, height: float) -> "Quad":
        return Quad(*(Point2(p.x * width, p.y * height) for p in self))

    def with_corner(self, index: int, point: Point2) -> "Quad":
        pts = list(self)
        pts[index] = Point2(float(point[0]), float(point[1]))
        return Quad(*pts)


class MeshCell(NamedTuple):
    """Source cell corners (c00, c10, c01, c11) and their destination images."""
    src: Tuple[Point2, Point2, Point2, Point2]
    dst: Tuple[Point2, Point2, Point2, Point2]


def lerp(a: Point2, b: Point2, t: float) -> Point2:
    return Point2(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def bilinear_map(u: float, v: float, quad: Quad) -> Point2:
    """Map (u, v) of the unit square into ``quad``.

    Interpolates along the top and bottom edges, then between them. Exact at
    the corners and along the edges; interior points only approximate a
    perspective mapping. Not clamped, so values outside [0, 1] extrapolate.
    """
    top = lerp(quad.top_left, quad.top_right, u)
    bottom = lerp(quad.bottom_left, quad.bottom_right, u)
    return lerp(top, bottom, v)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mesh_size(cols: int, width: float, height: float,
              min_cols: int = 1, min_rows: int = 1) -> Tuple[int, int]:
    """Grid size for a source of ``width`` x ``height``.

    ``cols`` is the detail knob; rows follow the source aspect ratio so cells
    stay roughly square.
    """
    cols = max(1, int(min_cols), int(cols))
    if width <= 0 or height <= 0:
        return cols, max(1, int(min_rows))
    rows = _round_half_up(cols * height / width)
    return cols, max(1, int(min_rows), rows)


def mesh_cells(cols: int, rows: int, width: float, height: float,
               quad_px: Quad) -> Iterator[MeshCell]:
    """Yield every grid cell of the source with its destination corners."""
    step_x = width / cols
    step_y = height / rows

    # destination lattice, one bilinear lookup per grid vertex
    lattice: List[List[Point2]] = []
    for j in range(rows + 1):
        v = (j * step_y) / height
        lattice.append([bilinear_map((i * step_x) / width, v, quad_px) for i in range(cols + 1)])

    for j in range(rows):
        y0, y1 = j * step_y, (j + 1) * step_y
        for i in range(cols):
            x0, x1 = i * step_x, (i + 1) * step_x
            src = (Point2(x0, y0), Point2(x1, y0), Point2(x0, y1), Point2(x1, y1))
            dst = (lattice[j][i], lattice[j][i + 1], lattice[j + 1][i], lattice[j + 1][i + 1])
            yield MeshCell(src, dst)


def triangle_area(p0, p1, p2) -> float:
    return 0.5 * abs((p1[0] - p0[0]) * (p2[1] - p0[1]) - (p2[0] - p0[0]) * (p1[1] - p0[1]))


def bounding_box(points) -> Tuple[float, float, float, float]:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return min(xs), min(ys), max(xs), max(ys)
