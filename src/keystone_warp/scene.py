import itertools
import logging
import math
import random
from typing import List, Optional

from .geometry import Point2, Quad
from .media import MediaSource

logger = logging.getLogger(__name__)


def _clamp01(v: float) -> float:
    return min(1.0, max(0.0, v))


class Shape:
    """A secondary surface with its own optional media. Coordinates are normalized."""

    kind = "shape"

    def __init__(self, shape_id: str):
        self.id = shape_id
        self.media: Optional[MediaSource] = None

    def attach(self, media: Optional[MediaSource]):
        if self.media is not None and self.media is not media:
            self.media.release()
        self.media = media

    def detach(self):
        self.attach(None)

    # ``size`` is the surface (width, height); only circles depend on it

    def handles(self, size=(1, 1)) -> List[Point2]:
        raise NotImplementedError

    def move_handle(self, idx: int, point: Point2, size=(1, 1)):
        raise NotImplementedError

    def contains(self, point: Point2, size=(1, 1)) -> bool:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.id!r})"


class PolygonShape(Shape):

    def __init__(self, shape_id: str, points):
        super().__init__(shape_id)
        self.points: List[Point2] = [Point2(float(p[0]), float(p[1])) for p in points]

    def handles(self, size=(1, 1)) -> List[Point2]:
        return list(self.points)

    def move_handle(self, idx: int, point: Point2, size=(1, 1)):
        self.points[idx] = Point2(_clamp01(point.x), _clamp01(point.y))

    def contains(self, point: Point2, size=(1, 1)) -> bool:
        # even-odd ray cast
        inside = False
        n = len(self.points)
        for i in range(n):
            a, b = self.points[i], self.points[(i + 1) % n]
            if (a.y > point.y) != (b.y > point.y):
                x = a.x + (point.y - a.y) * (b.x - a.x) / (b.y - a.y)
                if point.x < x:
                    inside = not inside
        return inside


class TriangleShape(PolygonShape):
    kind = "triangle"

    def __init__(self, shape_id: str, points):
        if len(points) != 3:
            raise ValueError("a triangle needs 3 points")
        super().__init__(shape_id, points)


class RectangleShape(PolygonShape):
    """Four points in quad winding; rendered with the mesh warp."""
    kind = "rectangle"

    def __init__(self, shape_id: str, points):
        if len(points) != 4:
            raise ValueError("a rectangle needs 4 points")
        super().__init__(shape_id, points)

    @property
    def quad(self) -> Quad:
        return Quad(*self.points)


class CircleShape(Shape):
    """Center plus radius; radius is relative to the shorter surface side."""
    kind = "circle"

    def __init__(self, shape_id: str, center, radius: float):
        super().__init__(shape_id)
        self.center = Point2(float(center[0]), float(center[1]))
        self.radius = float(radius)

    def _pixel_distance(self, point: Point2, size) -> float:
        """Distance from the center in units of the shorter surface side."""
        w, h = max(float(size[0]), 1e-9), max(float(size[1]), 1e-9)
        return math.hypot((point.x - self.center.x) * w, (point.y - self.center.y) * h) / min(w, h)

    def handles(self, size=(1, 1)) -> List[Point2]:
        # center, then a radius handle at angle 0 on the drawn circle
        w, h = max(float(size[0]), 1e-9), float(size[1])
        return [self.center, Point2(self.center.x + self.radius * min(w, h) / w, self.center.y)]

    def move_handle(self, idx: int, point: Point2, size=(1, 1)):
        if idx == 0:
            self.center = Point2(point.x, point.y)
        else:
            self.radius = self._pixel_distance(point, size)

    def contains(self, point: Point2, size=(1, 1)) -> bool:
        return self._pixel_distance(point, size) <= self.radius


SHAPE_KINDS = ("triangle", "rectangle", "circle")


def default_shape(kind: str, shape_id: str, center: Optional[Point2] = None) -> Shape:
    if center is None:
        center = Point2(0.5 + (random.random() - 0.5) * 0.1,
                        0.45 + (random.random() - 0.5) * 0.1)
    cx, cy = center
    if kind == "triangle":
        return TriangleShape(shape_id, [(cx - 0.08, cy + 0.06),
                                        (cx + 0.08, cy + 0.06),
                                        (cx, cy - 0.08)])
    if kind == "rectangle":
        w, h = 0.18, 0.12
        return RectangleShape(shape_id, [(cx - w / 2, cy - h / 2),
                                         (cx + w / 2, cy - h / 2),
                                         (cx + w / 2, cy + h / 2),
                                         (cx - w / 2, cy + h / 2)])
    if kind == "circle":
        return CircleShape(shape_id, center, 0.08)
    raise ValueError(f"unknown shape kind {kind!r}; expected one of {SHAPE_KINDS}")


class Scene:
    """Everything the renderer draws: the corner quad, its media, and the shapes."""

    def __init__(self, resolution: int = 20, min_resolution: int = 1, max_resolution: int = 128):
        self.min_resolution = int(min_resolution)
        self.max_resolution = int(max_resolution)
        self.corners: Quad = Quad.identity()
        self.media: Optional[MediaSource] = None
        self.shapes: List[Shape] = []
        self.selected_id: Optional[str] = None
        self._resolution = self.min_resolution
        self.resolution = resolution
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, settings) -> "Scene":
        return cls(settings.grid_resolution, settings.min_resolution, settings.max_resolution)

    # --- RESOLUTION ---

    @property
    def resolution(self) -> int:
        return self._resolution

    @resolution.setter
    def resolution(self, value: int):
        self._resolution = max(self.min_resolution, min(self.max_resolution, int(value)))

    # --- CORNERS ---

    def set_corner(self, index: int, point: Point2):
        self.corners = self.corners.with_corner(index, point)

    def set_corners(self, quad: Quad):
        self.corners = Quad.from_points(quad)

    def reset_corners(self):
        self.corners = Quad.identity()

    # --- SHAPES ---

    def add_shape(self, kind: str, center: Optional[Point2] = None) -> Shape:
        shape = default_shape(kind, f"s{next(self._ids)}", center)
        self.shapes.append(shape)
        self.selected_id = shape.id
        return shape

    def get_shape(self, shape_id: Optional[str]) -> Optional[Shape]:
        for s in self.shapes:
            if s.id == shape_id:
                return s
        return None

    def selected_shape(self) -> Optional[Shape]:
        return self.get_shape(self.selected_id)

    def select(self, shape_id: Optional[str]):
        if shape_id is not None and self.get_shape(shape_id) is None:
            raise KeyError(shape_id)
        self.selected_id = shape_id

    def delete_shape(self, shape_id: Optional[str] = None) -> Optional[Shape]:
        """Remove a shape (the selected one by default) and release its media."""
        shape = self.get_shape(shape_id if shape_id is not None else self.selected_id)
        if shape is None:
            return None
        shape.detach()
        self.shapes.remove(shape)
        if self.selected_id == shape.id:
            self.selected_id = self.shapes[0].id if self.shapes else None
        return shape

    # --- MEDIA ---

    def attach_media(self, media: MediaSource):
        """Attach to the selected shape, or to the corner quad when nothing is selected."""
        shape = self.selected_shape()
        if shape is not None:
            shape.attach(media)
            logger.debug("Attached %s to %s", media.path, shape)
            return
        if self.media is not None and self.media is not media:
            self.media.release()
        self.media = media
        logger.debug("Attached %s to the corner quad", media.path)

    def detach_media(self, shape_id: Optional[str] = None):
        if shape_id is not None:
            shape = self.get_shape(shape_id)
            if shape is None:
                raise KeyError(shape_id)
            shape.detach()
            return
        if self.media is not None:
            self.media.release()
            self.media = None

    def attached_media(self) -> List[MediaSource]:
        out = [self.media] if self.media is not None else []
        out.extend(s.media for s in self.shapes if s.media is not None)
        return out

    def advance_frames(self):
        """Step every attached live source to its next frame."""
        for media in self.attached_media():
            media.advance()

    def release(self):
        self.detach_media()
        for s in self.shapes:
            s.detach()


def needs_continuous_redraw(scene: Scene) -> bool:
    """True while any attached media changes over time."""
    return any(m.is_live for m in scene.attached_media())
