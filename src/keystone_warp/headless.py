"""Headless keystone render: CLI entry point.

Renders one frame of a source image or video through a calibration's corner
quad and writes it to disk.

Usage:
    keystone-warp-render <source> -o OUTPUT [-c CALIBRATION] [--size WxH] [--grid N]

Examples:
    keystone-warp-render poster.png -o warped.png -c calibration.json
    keystone-warp-render clip.mp4 -o frame.png -c calibration.json --size 1920x1080 --grid 32
"""
import argparse
import logging
import sys

import cv2

from .calibration import CalibrationError, read_calibration
from .config import load_settings
from .media import MediaLoadError, load_media
from .renderer import WarpRenderer, new_surface
from .scene import Scene

logger = logging.getLogger(__name__)


def _parse_size(text: str):
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}")
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError("size must be positive")
    return w, h


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render an image or video frame through a keystone calibration (headless).",
    )
    parser.add_argument("source", help="Image or video to warp.")
    parser.add_argument("-o", "--output", required=True, help="Output image path.")
    parser.add_argument("-c", "--calibration", help="Calibration JSON with the 4 corners.")
    parser.add_argument("--size", type=_parse_size,
                        help="Output size WxH (default: calibration image size, else source size).")
    parser.add_argument("--grid", type=int, help="Mesh columns (default from settings).")
    parser.add_argument("--config", help="YAML settings file.")
    parser.add_argument("--no-outline", action="store_true", help="Do not stroke the quad outline.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser


def render_file(source_path: str, output_path: str, calibration_path=None, size=None,
                grid=None, settings=None, draw_outline=None) -> tuple:
    """Render ``source_path`` to ``output_path``. Returns the (width, height) written."""
    scene = Scene.from_settings(settings) if settings else Scene()
    if grid is not None:
        scene.resolution = grid
    renderer = WarpRenderer(settings)

    media = load_media(source_path)
    try:
        scene.attach_media(media)
        recorded = (0, 0)
        if calibration_path:
            calib = read_calibration(calibration_path)
            scene.set_corners(calib.corners)
            recorded = calib.image_size
        if size is None:
            size = recorded if recorded[0] > 0 and recorded[1] > 0 else media.size
        surface = new_surface(*size)
        renderer.render(scene, surface, draw_outline=draw_outline)
        if not cv2.imwrite(output_path, surface):
            raise OSError(f"cv2.imwrite could not write {output_path}")
    finally:
        scene.release()
    return size


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        settings = load_settings(args.config)
        size = render_file(args.source, args.output, args.calibration, args.size, args.grid,
                           settings, False if args.no_outline else None)
    except (MediaLoadError, CalibrationError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Wrote {args.output} ({size[0]}x{size[1]})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
