import cv2
import numpy as np
from PySide6.QtGui import QImage


def cv_to_qimage(surface: np.ndarray) -> QImage:
    """Copy a rendered BGR surface into a QImage the painter can draw.

    Surfaces are always ``HxWx3`` uint8 (see ``renderer.new_surface``); an empty
    or missing surface gives a null image.
    """
    if surface is None or surface.size == 0:
        return QImage()
    rgb = cv2.cvtColor(surface, cv2.COLOR_BGR2RGB)
    h, w = rgb.shape[:2]
    # QImage borrows the buffer, so detach before rgb goes away
    return QImage(rgb.data, w, h, 3 * w, QImage.Format_RGB888).copy()
