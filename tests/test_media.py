"""
Tests for still and live media sources and file loading.
"""
import cv2
import numpy as np
import pytest

from keystone_warp.media import LiveFrameSource, MediaLoadError, StaticRaster, as_bgr, load_media

from conftest import FakeCapture, solid


class TestStaticRaster:

    def test_size_and_frame(self):
        media = StaticRaster(solid(40, 30, (1, 2, 3)))
        assert media.size == (40, 30)
        assert not media.is_live
        assert tuple(media.current_frame()[0, 0]) == (1, 2, 3)

    def test_grayscale_becomes_bgr(self):
        media = StaticRaster(np.full((5, 6), 7, np.uint8))
        assert media.current_frame().shape == (5, 6, 3)

    def test_bgra_drops_alpha(self):
        assert as_bgr(np.zeros((2, 2, 4), np.uint8)).shape == (2, 2, 3)

    def test_empty_rejected(self):
        with pytest.raises(MediaLoadError):
            StaticRaster(np.zeros((0, 0, 3), np.uint8))


class TestLiveFrameSource:

    def test_loops_at_end(self):
        frames = [solid(8, 6, (10, 10, 10)), solid(8, 6, (20, 20, 20))]
        media = LiveFrameSource(FakeCapture(frames))
        values = []
        for _ in range(5):
            values.append(int(media.current_frame()[0, 0, 0]))
            media.advance()
        assert values == [10, 20, 10, 20, 10]
        assert media.is_live

    def test_repeated_reads_hold_the_frame(self):
        cap = FakeCapture([solid(8, 6, (10, 10, 10)), solid(8, 6, (20, 20, 20))])
        media = LiveFrameSource(cap)
        assert [int(media.current_frame()[0, 0, 0]) for _ in range(3)] == [10, 10, 10]
        assert cap.pos == 1

    def test_advance_after_release_keeps_last_frame(self):
        media = LiveFrameSource(FakeCapture([solid(8, 6, (7, 7, 7))]))
        media.current_frame()
        media.release()
        media.advance()
        assert int(media.current_frame()[0, 0, 0]) == 7

    def test_size_fixed_at_attach(self):
        cap = FakeCapture([solid(8, 6, (0, 0, 0))])
        media = LiveFrameSource(cap)
        cap.size = (1000, 1000)
        assert media.size == (8, 6)

    def test_release_closes_capture(self):
        cap = FakeCapture([solid(8, 6, (5, 5, 5))])
        media = LiveFrameSource(cap)
        media.current_frame()
        media.release()
        assert cap.released
        # last decoded frame is still available
        assert int(media.current_frame()[0, 0, 0]) == 5
        media.release()

    def test_unreadable_stream_returns_none(self):
        cap = FakeCapture([solid(8, 6, (5, 5, 5))])
        cap.frames = []
        assert LiveFrameSource(cap).current_frame() is None


class TestLoadMedia:

    def test_png_loads_as_still(self, tmp_path):
        path = str(tmp_path / "still.png")
        assert cv2.imwrite(path, solid(12, 10, (9, 8, 7)))
        media = load_media(path)
        assert isinstance(media, StaticRaster)
        assert media.size == (12, 10)
        assert media.path == path

    def test_missing_file(self, tmp_path):
        with pytest.raises(MediaLoadError):
            load_media(str(tmp_path / "nope.png"))

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "junk.png"
        path.write_bytes(b"this is not an image")
        with pytest.raises(MediaLoadError):
            load_media(str(path))
