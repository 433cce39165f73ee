import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WarpSettings:
    grid_resolution: int = 20
    min_resolution: int = 1
    max_resolution: int = 128
    # long edge of the working copy of a source; sources are never upscaled
    max_working_edge: int = 1024
    shape_min_cols: int = 4
    shape_min_rows: int = 2
    background_bgr: Tuple[int, int, int] = (18, 18, 18)
    outline_bgr: Tuple[int, int, int] = (255, 255, 255)
    outline_thickness: int = 2
    draw_outline: bool = True
    interpolation: str = "linear"
    frame_interval_ms: int = 16
    handle_radius: int = 10


_COLOR_KEYS = ("background_bgr", "outline_bgr")


def settings_from_dict(cfg: dict, base: Optional[WarpSettings] = None) -> WarpSettings:
    """Overlay known keys of ``cfg`` on ``base`` (defaults when omitted)."""
    base = base or WarpSettings()
    cfg = cfg or {}
    updates = {}
    for f in fields(WarpSettings):
        if f.name not in cfg:
            continue
        value = cfg[f.name]
        if f.name in _COLOR_KEYS:
            value = tuple(int(c) for c in value)
            if len(value) != 3:
                raise ValueError(f"{f.name} must have 3 components")
        elif f.type in (int, "int"):
            value = int(value)
        elif f.type in (bool, "bool"):
            value = bool(value)
        elif f.type in (str, "str"):
            value = str(value)
        updates[f.name] = value
    unknown = set(cfg) - {f.name for f in fields(WarpSettings)}
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
    settings = replace(base, **updates)
    if settings.min_resolution < 1 or settings.max_resolution < settings.min_resolution:
        raise ValueError("resolution bounds must satisfy 1 <= min_resolution <= max_resolution")
    return settings


def load_settings(path: Optional[str] = None) -> WarpSettings:
    """Read YAML settings from ``path``; missing file or key falls back to defaults."""
    if not path:
        return WarpSettings()
    if not os.path.exists(path):
        logger.warning("Settings file %s not found, using defaults", path)
        return WarpSettings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return settings_from_dict(cfg)
