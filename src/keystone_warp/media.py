import logging
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class MediaLoadError(ValueError):
    """Raised when a file cannot be decoded as an image or video."""


def as_bgr(frame: np.ndarray) -> np.ndarray:
    """Normalize a decoded frame to 3-channel BGR uint8."""
    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    if frame.shape[2] == 1:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    return frame


class MediaSource:
    """Something that can hand the renderer its current frame."""

    is_live = False

    def __init__(self, path: Optional[str] = None):
        self.path = path

    @property
    def size(self) -> Tuple[int, int]:
        raise NotImplementedError

    def current_frame(self) -> Optional[np.ndarray]:
        raise NotImplementedError

    def advance(self):
        """Step to the next frame; still media has nothing to do."""

    def release(self):
        pass


class StaticRaster(MediaSource):
    """A still image, decoded once."""

    def __init__(self, frame: np.ndarray, path: Optional[str] = None):
        super().__init__(path)
        if frame is None or frame.size == 0:
            raise MediaLoadError("empty image")
        self.frame = as_bgr(frame)

    @property
    def size(self) -> Tuple[int, int]:
        h, w = self.frame.shape[:2]
        return w, h

    def current_frame(self) -> np.ndarray:
        return self.frame


class LiveFrameSource(MediaSource):
    """Video or animated image read frame by frame, looping at the end."""

    is_live = True

    def __init__(self, cap, path: Optional[str] = None):
        super().__init__(path)
        self.cap = cap
        # size is fixed at attach time even if the stream reports otherwise later
        self._size = (int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                      int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        self._last: Optional[np.ndarray] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self._size

    def _read(self):
        ok, frame = self.cap.read()
        if not ok:
            # loop
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ok, frame = self.cap.read()
        if ok and frame is not None:
            self._last = as_bgr(frame)

    def advance(self):
        if self.cap is not None:
            self._read()

    def current_frame(self) -> Optional[np.ndarray]:
        """The frame last read; repaints do not move the stream."""
        if self._last is None and self.cap is not None:
            self._read()
        return self._last

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.debug("Released capture for %s", self.path)


def load_media(path: str) -> MediaSource:
    """Open ``path`` as a live source when it has several frames, else as a still image."""
    # Try video first
    cap = cv2.VideoCapture(path)
    if cap.isOpened() and int(cap.get(cv2.CAP_PROP_FRAME_COUNT)) > 1:
        logger.info("Opened %s as live media", path)
        return LiveFrameSource(cap, path)
    # Fallback image
    cap.release()
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        raise MediaLoadError(f"Failed to load media {path!r}. Unsupported or missing file.")
    logger.info("Opened %s as still image", path)
    return StaticRaster(img, path)
