import logging
from typing import Optional

import numpy as np
from PySide6 import QtCore
from PySide6.QtCore import Qt, QPointF, QRect
from PySide6.QtGui import QPainter, QPen, QBrush, QColor, QPolygonF
from PySide6.QtWidgets import QWidget

from .config import WarpSettings
from .geometry import Point2
from .interaction import DragController
from .renderer import WarpRenderer, new_surface
from .scene import CircleShape, Scene
from .utils import cv_to_qimage

logger = logging.getLogger(__name__)


class Canvas(QWidget):
    """Render widget: warped output plus draggable corner and shape handles."""

    geometryEdited = QtCore.Signal()

    def __init__(self, scene: Scene, settings: Optional[WarpSettings] = None, parent=None):
        super().__init__(parent)
        self.setMouseTracking(True)

        self.settings = settings or WarpSettings()
        self.scene = scene
        self.renderer = WarpRenderer(self.settings)
        self.drag = DragController(scene)

        self.show_handles = True
        self.handle_radius = self.settings.handle_radius
        self._surface: Optional[np.ndarray] = None

    # --- COORDINATES ---

    def to_normalized(self, pos: QPointF) -> Point2:
        w = max(1, self.width())
        h = max(1, self.height())
        return Point2(pos.x() / w, pos.y() / h)

    def to_widget(self, p: Point2) -> QPointF:
        return QPointF(p.x * self.width(), p.y * self.height())

    # --- RENDERING ---

    def render_surface(self) -> np.ndarray:
        w, h = max(1, self.width()), max(1, self.height())
        if self._surface is None or self._surface.shape[:2] != (h, w):
            self._surface = new_surface(w, h)
        return self.renderer.render(self.scene, self._surface)

    def paintEvent(self, event):
        painter = QPainter(self)
        surface = self.render_surface()
        painter.drawImage(0, 0, cv_to_qimage(surface))

        if self.scene.media is None and not self.scene.shapes:
            painter.setPen(QPen(QColor(220, 220, 220)))
            painter.drawText(
                self.rect(),
                Qt.AlignCenter,
                "Open media (Toolbar → Open Media) to begin.\nDrag corner handles to align.",
            )

        # Draw overlays LAST, so handles are always visible
        if self.show_handles:
            self.draw_overlay(painter)
        painter.end()

    def draw_overlay(self, painter: QPainter):
        selected = self.scene.selected_id
        for shape in self.scene.shapes:
            color = QColor(255, 180, 0, 230) if shape.id == selected else QColor(0, 200, 255, 220)
            painter.setPen(QPen(color, 2, Qt.SolidLine))
            painter.setBrush(Qt.NoBrush)
            if isinstance(shape, CircleShape):
                r = shape.radius * min(self.width(), self.height())
                painter.drawEllipse(self.to_widget(shape.center), r, r)
            else:
                painter.drawPolygon(QPolygonF([self.to_widget(p) for p in shape.points]))

        # corner handles are hidden while a shape is selected
        shape = self.scene.selected_shape()
        handles = shape.handles(self.surface_size()) if shape is not None else list(self.scene.corners)
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        painter.setPen(QPen(Qt.black, 1))
        r = self.handle_radius
        for p in handles:
            painter.drawEllipse(self.to_widget(p), r, r)

        painter.setPen(QPen(QColor(220, 220, 220)))
        painter.drawText(
            QRect(10, 10, 520, 40),
            Qt.AlignLeft | Qt.AlignTop,
            "Click a shape to select it, click the background to edit the corners.",
        )

    # --- INPUT ---

    def surface_size(self):
        return (max(1, self.width()), max(1, self.height()))

    def _tolerance(self) -> float:
        # handle radius in normalized units
        return self.handle_radius * 1.5 / max(1, min(self.width(), self.height()))

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.drag.size = self.surface_size()
            self.drag.press(self.to_normalized(event.position()), self._tolerance())
            self.geometryEdited.emit()
            self.update()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self.drag.dragging:
            self.drag.size = self.surface_size()
            if self.drag.move(self.to_normalized(event.position())):
                self.geometryEdited.emit()
                self.update()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        # any release ends the drag
        self.drag.release()
        super().mouseReleaseEvent(event)
