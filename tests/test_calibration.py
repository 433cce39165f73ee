"""
Tests for calibration save/load.

Verifies:
- Save -> load reproduces the 4 corners bit for bit
- Recorded image size and timestamp
- Wrong corner counts, bad JSON, bad values are rejected and leave the scene unchanged
"""
import json

import numpy as np
import pytest

from keystone_warp.calibration import (
    CalibrationError, calibration_to_dict, load_calibration, parse_calibration,
    read_calibration, save_calibration,
)
from keystone_warp.geometry import Quad
from keystone_warp.media import StaticRaster
from keystone_warp.scene import Scene

ODD_QUAD = Quad.from_points([(0.1, 1 / 3), (0.9000000000000001, 0.05),
                             (0.95, 2 / 3), (1e-17, 0.9999999999999999)])


def _write(tmp_path, data, name="calib.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestRoundTrip:

    def test_corners_exact(self, tmp_path):
        scene = Scene()
        scene.set_corners(ODD_QUAD)
        path = str(tmp_path / "c.json")
        save_calibration(scene, path)

        other = Scene()
        load_calibration(other, path)
        assert other.corners == ODD_QUAD

    def test_record_contents(self):
        scene = Scene()
        scene.attach_media(StaticRaster(np.zeros((30, 40, 3), np.uint8)))
        data = calibration_to_dict(scene, timestamp=1234)
        assert data["image"] == {"width": 40, "height": 30}
        assert data["timestamp"] == 1234
        assert data["corners"][2] == {"x": 1.0, "y": 1.0}

    def test_timestamp_defaults_to_now(self):
        assert calibration_to_dict(Scene())["timestamp"] > 1_600_000_000_000

    def test_read_returns_size(self, tmp_path):
        path = _write(tmp_path, {"corners": [[0, 0], [1, 0], [1, 1], [0, 1]],
                                 "image": {"width": 1920, "height": 1080}, "timestamp": 5})
        calib = read_calibration(path)
        assert calib.image_size == (1920, 1080)
        assert calib.timestamp == 5
        assert calib.corners == Quad.identity()


class TestRejection:

    @pytest.mark.parametrize("count", [0, 3, 5])
    def test_wrong_corner_count(self, tmp_path, count):
        scene = Scene()
        scene.set_corners(ODD_QUAD)
        path = _write(tmp_path, {"corners": [{"x": 0.5, "y": 0.5}] * count})
        with pytest.raises(CalibrationError):
            load_calibration(scene, path)
        assert scene.corners == ODD_QUAD

    def test_bad_json(self, tmp_path):
        scene = Scene()
        path = tmp_path / "broken.json"
        path.write_text("{corners: ", encoding="utf-8")
        with pytest.raises(CalibrationError):
            load_calibration(scene, str(path))
        assert scene.corners == Quad.identity()

    def test_missing_file(self, tmp_path):
        with pytest.raises(CalibrationError):
            read_calibration(str(tmp_path / "absent.json"))

    @pytest.mark.parametrize("corner", [{"x": 0.5}, {"x": "0.5", "y": 0.5}, [1, 2, 3],
                                        {"x": True, "y": 0.0}, {"x": float("nan"), "y": 0}])
    def test_bad_corner_values(self, corner):
        data = {"corners": [{"x": 0, "y": 0}, {"x": 1, "y": 0}, {"x": 1, "y": 1}, corner]}
        with pytest.raises(CalibrationError):
            parse_calibration(data)

    def test_half_valid_record_is_not_applied(self, tmp_path):
        scene = Scene()
        path = _write(tmp_path, {"corners": [{"x": 0.2, "y": 0.2}, {"x": 1, "y": 0},
                                             {"x": 1, "y": 1}, {"x": "bad", "y": 1}]})
        with pytest.raises(CalibrationError):
            load_calibration(scene, path)
        assert scene.corners == Quad.identity()

    def test_not_an_object(self):
        with pytest.raises(CalibrationError):
            parse_calibration([1, 2, 3, 4])

    def test_error_is_value_error(self):
        assert issubclass(CalibrationError, ValueError)

    def test_non_utf8_file(self, tmp_path):
        scene = Scene()
        path = tmp_path / "binary.json"
        path.write_bytes(b'{"corners": "\xff\xfe"}')
        with pytest.raises(CalibrationError):
            load_calibration(scene, str(path))
        assert scene.corners == Quad.identity()

    @pytest.mark.parametrize("timestamp", ["Infinity", "-Infinity", "NaN", '"yesterday"'])
    def test_bad_timestamp(self, tmp_path, timestamp):
        scene = Scene()
        path = tmp_path / "ts.json"
        path.write_text('{"corners": [[0.2, 0.2], [1, 0], [1, 1], [0, 1]], '
                        '"timestamp": %s}' % timestamp, encoding="utf-8")
        with pytest.raises(CalibrationError):
            load_calibration(scene, str(path))
        assert scene.corners == Quad.identity()

    @pytest.mark.parametrize("image", ['{"width": 1e999, "height": 10}',
                                       '{"width": 10, "height": NaN}',
                                       '{"width": "wide", "height": 10}'])
    def test_bad_image_size(self, tmp_path, image):
        scene = Scene()
        path = tmp_path / "size.json"
        path.write_text('{"corners": [[0.2, 0.2], [1, 0], [1, 1], [0, 1]], '
                        '"image": %s}' % image, encoding="utf-8")
        with pytest.raises(CalibrationError):
            load_calibration(scene, str(path))
        assert scene.corners == Quad.identity()
