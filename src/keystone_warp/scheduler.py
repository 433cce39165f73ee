import logging

from PySide6 import QtCore

from .scene import Scene, needs_continuous_redraw

logger = logging.getLogger(__name__)


class FrameScheduler(QtCore.QObject):
    """Repeating redraw timer that runs only while live media is attached."""

    def __init__(self, callback, interval_ms: int = 16, parent=None):
        super().__init__(parent)
        self.timer = QtCore.QTimer(self)
        self.timer.setInterval(int(interval_ms))  # ~60 fps
        self.timer.timeout.connect(callback)

    @property
    def active(self) -> bool:
        return self.timer.isActive()

    def sync(self, scene: Scene) -> bool:
        """Start or stop the timer to match the scene. Returns whether it runs."""
        if needs_continuous_redraw(scene):
            if not self.timer.isActive():
                self.timer.start()
                logger.debug("Frame scheduler started")
        elif self.timer.isActive():
            self.timer.stop()
            logger.debug("Frame scheduler stopped")
        return self.timer.isActive()

    def stop(self):
        self.timer.stop()
