import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from .affine import solve_affine
from .config import WarpSettings
from .geometry import Point2, Quad, mesh_cells, mesh_size
from .media import MediaSource
from .rasterizer import fill_circle, fill_triangle, interp_flag, rasterize_triangle
from .scene import CircleShape, RectangleShape, Scene, TriangleShape

logger = logging.getLogger(__name__)


def working_frame(frame: np.ndarray, max_edge: int = 1024) -> np.ndarray:
    """Downscale ``frame`` so its long edge is at most ``max_edge``; never upscales."""
    h, w = frame.shape[:2]
    rescale = min(max_edge / w, max_edge / h, 1.0)
    if rescale >= 1.0:
        return frame
    size = (max(1, int(round(w * rescale))), max(1, int(round(h * rescale))))
    return cv2.resize(frame, size, interpolation=cv2.INTER_AREA)


def new_surface(width: int, height: int, color=(0, 0, 0)) -> np.ndarray:
    surface = np.empty((int(height), int(width), 3), np.uint8)
    surface[:] = color
    return surface


class WarpRenderer:
    """Stateless per frame: every call recomputes the mesh from the scene."""

    def __init__(self, settings: Optional[WarpSettings] = None):
        self.settings = settings or WarpSettings()
        self._interp = interp_flag(self.settings.interpolation)

    def render(self, scene: Scene, surface: np.ndarray,
               draw_outline: Optional[bool] = None) -> np.ndarray:
        """Redraw ``surface`` (HxWx3 BGR uint8) in place from ``scene`` and return it."""
        surface[:] = self.settings.background_bgr
        if draw_outline is None:
            draw_outline = self.settings.draw_outline

        frame = self._frame_of(scene.media)
        if frame is not None:
            h, w = surface.shape[:2]
            quad_px = scene.corners.to_pixels(w, h)
            self.warp_quad(surface, frame, quad_px, scene.resolution)
            if draw_outline:
                self.stroke_quad(surface, quad_px)

        for shape in scene.shapes:
            self.render_shape(surface, shape, scene.resolution)
        return surface

    def _frame_of(self, media: Optional[MediaSource]) -> Optional[np.ndarray]:
        if media is None:
            return None
        frame = media.current_frame()
        if frame is None or frame.size == 0:
            return None
        return working_frame(frame, self.settings.max_working_edge)

    # --- MESH WARP ---

    def warp_quad(self, surface: np.ndarray, frame: np.ndarray, quad_px: Quad,
                  resolution: int, min_cols: int = 1, min_rows: int = 1) -> Tuple[int, int]:
        """Piecewise-affine warp of ``frame`` onto ``quad_px``. Returns the grid size used."""
        fh, fw = frame.shape[:2]
        cols, rows = mesh_size(resolution, fw, fh, min_cols, min_rows)
        skipped = 0
        for cell in mesh_cells(cols, rows, fw, fh, quad_px):
            c00, c10, c01, c11 = cell.src
            d00, d10, d01, d11 = cell.dst
            # fixed diagonal: upper-left and lower-right halves
            for src_tri, dst_tri in (((c00, c10, c01), (d00, d10, d01)),
                                     ((c10, c11, c01), (d10, d11, d01))):
                transform = solve_affine(src_tri, dst_tri)
                if not rasterize_triangle(surface, frame, src_tri, dst_tri, transform, self._interp):
                    skipped += 1
        if skipped:
            logger.debug("Mesh %dx%d: %d triangles not drawn", cols, rows, skipped)
        return cols, rows

    def stroke_quad(self, surface: np.ndarray, quad_px: Quad):
        pts = np.asarray(quad_px, dtype=np.float64)
        if not np.isfinite(pts).all():
            return
        q = np.round(pts * 16).astype(np.int32).reshape(-1, 1, 2)
        cv2.polylines(surface, [q], isClosed=True, color=self.settings.outline_bgr,
                      thickness=max(1, int(self.settings.outline_thickness)),
                      lineType=cv2.LINE_AA, shift=4)

    # --- SHAPES ---

    def render_shape(self, surface: np.ndarray, shape, resolution: int) -> bool:
        frame = self._frame_of(shape.media)
        if frame is None:
            return False
        h, w = surface.shape[:2]
        if isinstance(shape, RectangleShape):
            cols = min(max(resolution, self.settings.shape_min_cols), self.settings.max_resolution)
            self.warp_quad(surface, frame, shape.quad.to_pixels(w, h), cols,
                           self.settings.shape_min_cols, self.settings.shape_min_rows)
            return True
        if isinstance(shape, TriangleShape):
            pts = [Point2(p.x * w, p.y * h) for p in shape.points]
            return fill_triangle(surface, frame, pts, self._interp) is not None
        if isinstance(shape, CircleShape):
            center = (shape.center.x * w, shape.center.y * h)
            return fill_circle(surface, frame, center, shape.radius * min(w, h), self._interp)
        logger.warning("No renderer for shape %r", shape)
        return False
