import argparse
import logging
import signal
import sys

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QToolBar,
)

from .calibration import CalibrationError, load_calibration, save_calibration
from .canvas import Canvas
from .config import WarpSettings, load_settings
from .media import MediaLoadError, load_media
from .scene import Scene
from .scheduler import FrameScheduler

logger = logging.getLogger(__name__)

MEDIA_FILTER = "Media Files (*.png *.jpg *.jpeg *.bmp *.gif *.webp *.mp4 *.mov *.avi *.mkv *.webm);;All Files (*)"


class MainWindow(QMainWindow):
    def __init__(self, settings: WarpSettings = None):
        super().__init__()
        self.setWindowTitle("Keystone Warp")
        self.resize(1200, 800)

        self.settings = settings or WarpSettings()
        self.scene = Scene.from_settings(self.settings)
        self.canvas = Canvas(self.scene, self.settings, self)
        self.canvas.geometryEdited.connect(self.on_scene_changed)
        self.setCentralWidget(self.canvas)

        # redraws only while a video / animated image is attached
        self.scheduler = FrameScheduler(self.tick, self.settings.frame_interval_ms, self)

        toolbar = self.addToolBar("Main")

        act_open = QAction("Open Media", self)
        act_open.setToolTip("Attach an image or video to the selected shape, or to the corner quad")
        act_open.triggered.connect(self.open_media)
        toolbar.addAction(act_open)

        act_detach = QAction("Remove Media", self)
        act_detach.triggered.connect(self.remove_media)
        toolbar.addAction(act_detach)

        toolbar.addSeparator()

        for kind in ("triangle", "rectangle", "circle"):
            act = QAction(f"Add {kind.title()}", self)
            act.triggered.connect(lambda checked=False, k=kind: self.add_shape(k))
            toolbar.addAction(act)

        act_delete = QAction("Delete Shape", self)
        act_delete.setShortcut(QKeySequence.Delete)
        act_delete.triggered.connect(self.delete_shape)
        toolbar.addAction(act_delete)

        toolbar.addSeparator()

        toolbar.addWidget(QLabel(" Grid "))
        self.grid_slider = QSlider(Qt.Horizontal)
        self.grid_slider.setRange(self.scene.min_resolution, self.scene.max_resolution)
        self.grid_slider.setValue(self.scene.resolution)
        self.grid_slider.setFixedWidth(160)
        self.grid_slider.valueChanged.connect(self.set_resolution)
        toolbar.addWidget(self.grid_slider)
        self.grid_label = QLabel(str(self.scene.resolution))
        self.grid_label.setMinimumWidth(32)
        toolbar.addWidget(self.grid_label)

        toolbar.addSeparator()

        act_reset = QAction("Reset Corners", self)
        act_reset.triggered.connect(self.reset_corners)
        toolbar.addAction(act_reset)

        act_save = QAction("Save Calibration", self)
        act_save.triggered.connect(self.save_calibration)
        toolbar.addAction(act_save)

        act_load = QAction("Load Calibration", self)
        act_load.triggered.connect(self.load_calibration)
        toolbar.addAction(act_load)

        toolbar.addSeparator()

        btn_full = QPushButton("Toggle Fullscreen")
        btn_full.clicked.connect(self.toggle_fullscreen)
        toolbar.addWidget(btn_full)

        self.btn_hide_toolbar = QPushButton("Hide Toolbar")
        self.btn_hide_toolbar.setCheckable(True)
        self.btn_hide_toolbar.clicked.connect(self.toggle_toolbar)
        toolbar.addWidget(self.btn_hide_toolbar)

        # Keyboard shortcut: H toggles toolbar visibility and syncs the button
        self.shortcut_hide_toolbar = QShortcut(QKeySequence("H"), self)
        self.shortcut_hide_toolbar.activated.connect(self._shortcut_toggle_toolbar)

        self.statusBar().showMessage("Open media to begin. Drag corner handles to align.")

    def tick(self):
        # one new video frame per timer tick, however often Qt repaints
        self.scene.advance_frames()
        self.canvas.update()

    # --- SCENE EDITS ---

    def on_scene_changed(self):
        self.scheduler.sync(self.scene)
        self.canvas.update()

    def set_resolution(self, value: int):
        self.scene.resolution = value
        self.grid_label.setText(str(self.scene.resolution))
        self.on_scene_changed()

    def reset_corners(self):
        self.scene.reset_corners()
        self.on_scene_changed()

    def add_shape(self, kind: str):
        shape = self.scene.add_shape(kind)
        self.statusBar().showMessage(f"Added {shape.kind} ({shape.id})")
        self.on_scene_changed()

    def delete_shape(self):
        removed = self.scene.delete_shape()
        if removed is not None:
            self.statusBar().showMessage(f"Deleted {removed.kind} ({removed.id})")
        self.on_scene_changed()

    def open_media(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Image/Video", "", MEDIA_FILTER)
        if not path:
            return
        try:
            media = load_media(path)
        except MediaLoadError as e:
            logger.warning("%s", e)
            QMessageBox.critical(self, "Media Error", str(e))
            return
        self.scene.attach_media(media)
        target = self.scene.selected_shape()
        where = f"{target.kind} ({target.id})" if target else "corner quad"
        self.statusBar().showMessage(f"Attached {path} to {where}")
        self.on_scene_changed()

    def remove_media(self):
        self.scene.detach_media(self.scene.selected_id)
        self.on_scene_changed()

    # --- CALIBRATION ---

    def save_calibration(self):
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Calibration", "calibration.json", "JSON (*.json)"
        )
        if path:
            try:
                save_calibration(self.scene, path)
                self.statusBar().showMessage(f"Saved calibration: {path}")
            except OSError as e:
                QMessageBox.critical(self, "Save Error", str(e))

    def load_calibration(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Load Calibration", "", "JSON (*.json);;All Files (*)"
        )
        if path:
            try:
                load_calibration(self.scene, path)
            except CalibrationError as e:
                logger.warning("Rejected calibration %s: %s", path, e)
                QMessageBox.warning(self, "Invalid calibration file", str(e))
                return
            self.statusBar().showMessage(f"Loaded calibration: {path}")
            self.on_scene_changed()

    # --- WINDOW ---

    def toggle_fullscreen(self):
        if self.isFullScreen():
            self.showNormal()
        else:
            self.showFullScreen()

    def _shortcut_toggle_toolbar(self):
        # Flip the button state and reuse the same slot
        new_checked = not self.btn_hide_toolbar.isChecked()
        self.btn_hide_toolbar.setChecked(new_checked)
        self.toggle_toolbar(new_checked)

    def toggle_toolbar(self, checked: bool):
        # True => hide, False => show
        for tb in self.findChildren(QToolBar):
            tb.setVisible(not checked)
        msg = "Toolbar hidden (press H to toggle back)" if checked else "Toolbar visible"
        self.statusBar().showMessage(msg)

    def closeEvent(self, event):
        # Stop background activity before closing
        self.scheduler.stop()
        self.scene.release()
        super().closeEvent(event)


def sigint_handler(signum, frame):
    QApplication.quit()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Keystone warp projection mapper.")
    parser.add_argument("-c", "--config", help="YAML settings file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    args, qt_args = parser.parse_known_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        logger.error("Cannot load settings: %s", e)
        return 1

    app = QApplication([sys.argv[0]] + qt_args)
    signal.signal(signal.SIGINT, sigint_handler)

    win = MainWindow(settings)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
