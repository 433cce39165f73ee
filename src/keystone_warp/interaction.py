from typing import NamedTuple, Optional

from .geometry import Point2
from .scene import Scene


class DragTarget(NamedTuple):
    kind: str                 # "corner" or "shape"
    index: int
    shape_id: Optional[str] = None


class DragController:
    """Pointer handling over a scene, in normalized coordinates.

    The host converts widget pixels to [0, 1] and passes a tolerance in the
    same units. ``size`` is the surface size in pixels; circles need it to
    keep their radius round on non-square surfaces. Release always ends a
    drag, wherever the pointer is.
    """

    def __init__(self, scene: Scene, size=(1, 1)):
        self.scene = scene
        self.size = size
        self.active: Optional[DragTarget] = None

    @property
    def dragging(self) -> bool:
        return self.active is not None

    def _hit_selected_handle(self, point: Point2, tolerance: float) -> Optional[DragTarget]:
        shape = self.scene.selected_shape()
        if shape is None:
            return None
        for i, h in enumerate(shape.handles(self.size)):
            if abs(point.x - h.x) + abs(point.y - h.y) <= tolerance:
                return DragTarget("shape", i, shape.id)
        return None

    def _nearest_corner(self, point: Point2) -> int:
        dists = [(c.x - point.x) ** 2 + (c.y - point.y) ** 2 for c in self.scene.corners]
        return dists.index(min(dists))

    def press(self, point: Point2, tolerance: float = 0.02) -> Optional[DragTarget]:
        point = Point2(float(point[0]), float(point[1]))
        target = self._hit_selected_handle(point, tolerance)
        if target is None:
            # topmost shape wins
            for shape in reversed(self.scene.shapes):
                if shape.contains(point, self.size):
                    self.scene.select(shape.id)
                    self.active = None
                    return None
            self.scene.select(None)
            target = DragTarget("corner", self._nearest_corner(point))
        self.active = target
        return target

    def move(self, point: Point2) -> bool:
        """Move the dragged handle. Returns True when geometry changed."""
        if self.active is None:
            return False
        point = Point2(float(point[0]), float(point[1]))
        if self.active.kind == "corner":
            self.scene.set_corner(self.active.index, Point2(min(1.0, max(0.0, point.x)),
                                                            min(1.0, max(0.0, point.y))))
            return True
        shape = self.scene.get_shape(self.active.shape_id)
        if shape is None:
            # shape deleted mid-drag
            self.active = None
            return False
        shape.move_handle(self.active.index, point, self.size)
        return True

    def release(self):
        self.active = None
