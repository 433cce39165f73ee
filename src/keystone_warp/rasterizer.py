import math
from typing import Callable, Optional, Sequence, Tuple

import cv2
import numpy as np

from .affine import AffineTransform
from .geometry import bounding_box, triangle_area

# fractional bits for sub-pixel polygon/circle masks
MASK_SHIFT = 4
_MASK_SCALE = 1 << MASK_SHIFT

# source triangles thinner than this are not drawn
MIN_SOURCE_AREA = 1e-9


def interp_flag(name: str) -> int:
    name = (name or "linear").lower()
    return {
        "nearest": cv2.INTER_NEAREST,
        "linear":  cv2.INTER_LINEAR,
        "bilinear": cv2.INTER_LINEAR,
        "cubic":   cv2.INTER_CUBIC,
        "lanczos": cv2.INTER_LANCZOS4,
    }.get(name, cv2.INTER_LINEAR)


def cover_fit(src_w: float, src_h: float,
              x: float, y: float, w: float, h: float) -> Tuple[float, float, float, float]:
    """Rect (x, y, w, h) that covers the target box keeping the source aspect, centered."""
    if src_w <= 0 or src_h <= 0 or w <= 0 or h <= 0:
        return x, y, w, h
    ar = src_w / src_h
    if w / h > ar:
        dw, dh = w, w / ar
    else:
        dw, dh = h * ar, h
    return x + (w - dw) / 2.0, y + (h - dh) / 2.0, dw, dh


def cover_transform(src_w: float, src_h: float,
                    x: float, y: float, w: float, h: float) -> AffineTransform:
    """Scale + translate placing a ``src_w`` x ``src_h`` source with cover-fit."""
    dx, dy, dw, dh = cover_fit(src_w, src_h, x, y, w, h)
    return AffineTransform(dw / src_w, 0.0, 0.0, dh / src_h, dx, dy)


def _to_fixed(points: np.ndarray) -> np.ndarray:
    return np.round(points * _MASK_SCALE).astype(np.int32)


def _composite(surface: np.ndarray, source: np.ndarray, transform: AffineTransform,
               bbox: Tuple[float, float, float, float],
               paint_mask: Callable[[np.ndarray, float, float], None],
               interpolation: int) -> bool:
    """Warp ``source`` into the clipped bbox and copy where ``paint_mask`` marks."""
    h, w = surface.shape[:2]
    bx0, by0, bx1, by1 = bbox
    if not all(math.isfinite(v) for v in bbox):
        return False
    x0 = max(int(math.floor(bx0)), 0)
    y0 = max(int(math.floor(by0)), 0)
    x1 = min(int(math.ceil(bx1)) + 1, w)
    y1 = min(int(math.ceil(by1)) + 1, h)
    if x1 <= x0 or y1 <= y0:
        return False

    mask = np.zeros((y1 - y0, x1 - x0), np.uint8)
    paint_mask(mask, x0, y0)
    inside = mask > 0
    if not inside.any():
        return False

    m = transform.to_matrix()
    m[0, 2] -= x0
    m[1, 2] -= y0
    patch = cv2.warpAffine(source, m, (x1 - x0, y1 - y0),
                           flags=interpolation, borderMode=cv2.BORDER_REPLICATE)
    region = surface[y0:y1, x0:x1]
    region[inside] = patch[inside]
    return True


def rasterize_triangle(surface: np.ndarray, source: np.ndarray,
                       src_tri: Sequence, dst_tri: Sequence,
                       transform: AffineTransform,
                       interpolation: int = cv2.INTER_LINEAR) -> bool:
    """Draw ``source`` into ``surface`` through ``transform``, clipped to ``dst_tri``.

    ``transform`` maps source pixels forward onto the surface; every surface
    pixel inside the destination triangle is inverse-mapped and sampled.
    Degenerate triangles (collinear source points, singular or non-finite
    transforms) are skipped. Returns True when pixels were written.
    """
    if triangle_area(*src_tri) < MIN_SOURCE_AREA or not transform.is_invertible():
        return False

    pts = np.asarray(dst_tri, dtype=np.float64).reshape(3, 2)
    if not np.isfinite(pts).all():
        return False

    def paint(mask, x0, y0):
        cv2.fillConvexPoly(mask, _to_fixed(pts - (x0, y0)), 255,
                           lineType=cv2.LINE_8, shift=MASK_SHIFT)

    return _composite(surface, source, transform, bounding_box(pts), paint, interpolation)


def fill_circle(surface: np.ndarray, source: np.ndarray,
                center: Sequence, radius: float,
                interpolation: int = cv2.INTER_LINEAR) -> bool:
    """Cover-fit ``source`` onto the circle's bounding square, clipped to the circle."""
    cx, cy = float(center[0]), float(center[1])
    r = float(radius)
    if not (math.isfinite(cx) and math.isfinite(cy) and math.isfinite(r)) or r <= 0:
        return False
    src_h, src_w = source.shape[:2]
    transform = cover_transform(src_w, src_h, cx - r, cy - r, 2 * r, 2 * r)

    def paint(mask, x0, y0):
        c = _to_fixed(np.array([cx - x0, cy - y0]))
        cv2.circle(mask, (int(c[0]), int(c[1])), int(round(r * _MASK_SCALE)), 255,
                   thickness=-1, lineType=cv2.LINE_8, shift=MASK_SHIFT)

    return _composite(surface, source, transform, (cx - r, cy - r, cx + r, cy + r),
                      paint, interpolation)


def fill_triangle(surface: np.ndarray, source: np.ndarray, dst_tri: Sequence,
                  interpolation: int = cv2.INTER_LINEAR) -> Optional[AffineTransform]:
    """Cover-fit ``source`` into the triangle's bounding box, clipped to the triangle.

    Returns the placement transform, or None when nothing could be drawn.
    """
    pts = [(float(p[0]), float(p[1])) for p in dst_tri]
    x0, y0, x1, y1 = bounding_box(pts)
    if x1 - x0 <= 0 or y1 - y0 <= 0:
        return None
    src_h, src_w = source.shape[:2]
    transform = cover_transform(src_w, src_h, x0, y0, x1 - x0, y1 - y0)
    # source-space triangle that lands exactly on dst_tri
    src_tri = [transform.inverted().apply(p) for p in pts]
    if not rasterize_triangle(surface, source, src_tri, pts, transform, interpolation):
        return None
    return transform
