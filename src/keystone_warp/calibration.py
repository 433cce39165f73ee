"""Calibration files: the four corner points plus the source size they were made for.

Format::

    {
      "corners": [{"x": 0.0, "y": 0.0}, {"x": 1.0, "y": 0.0},
                  {"x": 1.0, "y": 1.0}, {"x": 0.0, "y": 1.0}],
      "timestamp": 1760659200000,
      "image": {"width": 1920, "height": 1080}
    }

Corners are normalized and ordered top-left, top-right, bottom-right,
bottom-left. Loading accepts ``[x, y]`` pairs as well.
"""
import json
import logging
import math
import numbers
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from .geometry import Point2, Quad

logger = logging.getLogger(__name__)


class CalibrationError(ValueError):
    """The calibration record is malformed; nothing was applied."""


@dataclass
class Calibration:
    corners: Quad
    image_size: Tuple[int, int] = (0, 0)
    timestamp: Optional[int] = None


def calibration_to_dict(scene, timestamp: Optional[int] = None) -> dict:
    width, height = scene.media.size if scene.media is not None else (0, 0)
    return {
        "corners": [{"x": p.x, "y": p.y} for p in scene.corners],
        "timestamp": int(time.time() * 1000) if timestamp is None else int(timestamp),
        "image": {"width": int(width), "height": int(height)},
    }


def _number(value, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise CalibrationError(f"{what} is not a number: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise CalibrationError(f"{what} is not finite")
    return value


def _integer(value, what: str) -> int:
    return int(_number(value, what))


def _corner(item, idx: int) -> Point2:
    if isinstance(item, dict):
        if "x" not in item or "y" not in item:
            raise CalibrationError(f"corner {idx} needs 'x' and 'y'")
        x, y = item["x"], item["y"]
    elif isinstance(item, (list, tuple)) and len(item) == 2:
        x, y = item
    else:
        raise CalibrationError(f"corner {idx} has an unsupported form: {item!r}")
    return Point2(_number(x, f"corner {idx} x"), _number(y, f"corner {idx} y"))


def parse_calibration(data) -> Calibration:
    """Validate a decoded record. Raises CalibrationError on anything unexpected."""
    if not isinstance(data, dict):
        raise CalibrationError("calibration must be a JSON object")
    corners = data.get("corners")
    if not isinstance(corners, list) or len(corners) != 4:
        count = len(corners) if isinstance(corners, list) else 0
        raise CalibrationError(f"expected exactly 4 corners, found {count}")
    quad = Quad(*(_corner(c, i) for i, c in enumerate(corners)))

    size = (0, 0)
    image = data.get("image")
    if isinstance(image, dict):
        size = (_integer(image.get("width", 0), "image width"),
                _integer(image.get("height", 0), "image height"))
    ts = data.get("timestamp")
    timestamp = _integer(ts, "timestamp") if ts is not None else None
    return Calibration(quad, size, timestamp)


def save_calibration(scene, path: str, timestamp: Optional[int] = None) -> dict:
    data = calibration_to_dict(scene, timestamp)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("Saved calibration to %s", path)
    return data


def read_calibration(path: str) -> Calibration:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CalibrationError(f"Failed to parse JSON: {e}") from e
    except OSError as e:
        raise CalibrationError(f"Cannot read {path}: {e}") from e
    return parse_calibration(data)


def load_calibration(scene, path: str) -> Calibration:
    """Read ``path`` and apply its corners to ``scene``; the scene is untouched on error."""
    calib = read_calibration(path)
    scene.set_corners(calib.corners)
    logger.info("Loaded calibration from %s", path)
    return calib
