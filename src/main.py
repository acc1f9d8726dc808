import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from PySide6.QtGui import QAction, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QToolBar,
)

from canvas import PerspectiveCanvas
from config import AppConfig, load_config
from edit_mode import EditModeController
from errors import ConfigError
from point_store import PointStore, attach_store
from transform_session import TransformSession

_LOGGER = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, config: AppConfig):
        super().__init__()
        self.setWindowTitle("Quad Warp")
        self.resize(1200, 800)
        self.config = config

        self.session = TransformSession(parent=self)
        self.edit_mode = EditModeController(toggle_keys=config.toggle_keys, parent=self)
        self.store = PointStore(config.store_path)
        if attach_store(self.session, self.store, config.storage_key):
            _LOGGER.info("Restored corner points %r from %s", config.storage_key, self.store.path)

        self.canvas = PerspectiveCanvas(
            self.session,
            self.edit_mode,
            handle_radius=config.handle_radius,
            frame_interval_ms=config.frame_interval_ms,
            parent=self,
        )
        self.setCentralWidget(self.canvas)
        self.session.degenerateMapping.connect(self._on_degenerate)

        # Controls
        toolbar = self.addToolBar("Main")

        act_open = QAction("Open Media", self)
        act_open.setToolTip("Show an image or video inside the quad")
        act_open.triggered.connect(self.open_media)
        toolbar.addAction(act_open)

        act_reset = QAction("Reset Corners", self)
        act_reset.triggered.connect(self.session.reset)
        toolbar.addAction(act_reset)

        toolbar.addSeparator()

        self.chk_edit = QCheckBox("Edit Mode")
        self.chk_edit.setChecked(self.edit_mode.editable)
        self.chk_edit.toggled.connect(self.edit_mode.set_editable)
        self.edit_mode.editableChanged.connect(self.chk_edit.setChecked)
        toolbar.addWidget(self.chk_edit)

        toolbar.addSeparator()

        btn_full = QPushButton("Toggle Fullscreen")
        btn_full.clicked.connect(self.toggle_fullscreen)
        toolbar.addWidget(btn_full)

        # Hide toolbar button (instance attr so the shortcut can sync it)
        self.btn_hide_toolbar = QPushButton("Hide Toolbar")
        self.btn_hide_toolbar.setCheckable(True)
        self.btn_hide_toolbar.clicked.connect(self.toggle_toolbar)
        toolbar.addWidget(self.btn_hide_toolbar)

        self.shortcut_hide_toolbar = QShortcut(QKeySequence("H"), self)
        self.shortcut_hide_toolbar.activated.connect(self._shortcut_toggle_toolbar)

        keys = "/".join(k.upper() for k in config.toggle_keys)
        self.statusBar().showMessage(f"Shift+{keys} toggles edit mode. Drag corner handles to align.")

        if config.media_path:
            self.load_media(config.media_path)
        self.canvas.setFocus()

    def closeEvent(self, event):
        self.canvas.clear_media()
        super().closeEvent(event)

    def open_media(self):
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Image/Video",
            "",
            "Media Files (*.png *.jpg *.jpeg *.bmp *.mp4 *.mov *.avi *.mkv);;All Files (*)",
        )
        if path:
            self.load_media(path)

    def load_media(self, path: str):
        if self.canvas.set_media(path):
            self.statusBar().showMessage(f"Showing {path}")
        else:
            QMessageBox.critical(self, "Media Error", f"Could not open {path}")

    def _on_degenerate(self, points):
        self.statusBar().showMessage("Three corners are collinear; keeping the last valid warp", 2000)

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


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quadwarp",
        description="Warp an image or video onto a quad with draggable corners.",
    )
    parser.add_argument("media", nargs="?", help="image or video to display")
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument("--store", type=Path, dest="store_path", help="points file")
    parser.add_argument("--key", dest="storage_key", help="storage key for the corner points")
    parser.add_argument(
        "--toggle-key",
        dest="toggle_keys",
        action="append",
        help="key that toggles edit mode with Shift (repeatable)",
    )
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ...")
    return parser


def resolve_config(argv: Optional[List[str]] = None) -> AppConfig:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    return config.with_overrides(
        media_path=args.media,
        store_path=args.store_path,
        storage_key=args.storage_key,
        toggle_keys=args.toggle_keys,
        log_level=args.log_level,
    )


def sigint_handler(signum, frame):
    QApplication.quit()


def main(argv: Optional[List[str]] = None):
    try:
        config = resolve_config(argv)
    except ConfigError as e:
        print(f"quadwarp: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv[:1])
    signal.signal(signal.SIGINT, sigint_handler)

    win = MainWindow(config)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
