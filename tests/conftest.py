"""
Shared fixtures for keystone-warp tests.

Provides solid and patterned source frames, a fake video capture for live
media, and a renderer with a black background.
"""
import os

import cv2
import numpy as np
import pytest

# Qt tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from keystone_warp.config import WarpSettings
from keystone_warp.media import LiveFrameSource, MediaSource, StaticRaster
from keystone_warp.renderer import WarpRenderer
from keystone_warp.scene import Scene


class FakeCapture:
    """Stands in for cv2.VideoCapture: serves a fixed list of frames."""

    def __init__(self, frames, size=None):
        self.frames = list(frames)
        h, w = self.frames[0].shape[:2]
        self.size = size or (w, h)
        self.pos = 0
        self.released = False

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.size[0])
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.size[1])
        if prop == cv2.CAP_PROP_FRAME_COUNT:
            return float(len(self.frames))
        return 0.0

    def read(self):
        if self.released or self.pos >= len(self.frames):
            return False, None
        frame = self.frames[self.pos]
        self.pos += 1
        return True, frame.copy()

    def set(self, prop, value):
        if prop == cv2.CAP_PROP_POS_FRAMES:
            self.pos = int(value)
        return True

    def release(self):
        self.released = True


class RecordingMedia(MediaSource):
    """Static media that remembers whether it was released."""

    def __init__(self, frame, live=False):
        super().__init__("recording")
        self.frame = frame
        self.is_live = live
        self.released = False
        self.advanced = 0

    @property
    def size(self):
        h, w = self.frame.shape[:2]
        return w, h

    def current_frame(self):
        return self.frame

    def advance(self):
        self.advanced += 1

    def release(self):
        self.released = True


def solid(width, height, color):
    frame = np.empty((height, width, 3), np.uint8)
    frame[:] = color
    return frame


@pytest.fixture
def black_settings():
    return WarpSettings(background_bgr=(0, 0, 0))


@pytest.fixture
def renderer(black_settings):
    return WarpRenderer(black_settings)


@pytest.fixture
def scene():
    return Scene()


@pytest.fixture
def noise_frame():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(48, 64, 3), dtype=np.uint8)


@pytest.fixture
def solid_media():
    return StaticRaster(solid(256, 256, (40, 180, 90)))


@pytest.fixture
def live_media():
    frames = [solid(32, 24, (255, 0, 0)), solid(32, 24, (0, 0, 255))]
    return LiveFrameSource(FakeCapture(frames), "fake.mp4")
