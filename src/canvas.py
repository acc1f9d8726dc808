import logging
from typing import Optional

import numpy as np
from PySide6 import QtCore
from PySide6.QtCore import Qt, QPointF, QRect
from PySide6.QtGui import QPainter, QPen, QBrush, QColor, QPainterPath
from PySide6.QtWidgets import QWidget

from edit_mode import EditModeController
from errors import MediaLoadError
from homography import apply_homography
from input_adapter import CornerDragAdapter
from transform_session import TransformSession
from utils import cv_to_qimage, placeholder_frame, warp_frame
from video_source import VideoSource

_LOGGER = logging.getLogger(__name__)


class PerspectiveCanvas(QWidget):
    """Renders content warped onto the session's quad, with draggable corner handles."""

    def __init__(
        self,
        session: TransformSession,
        edit_mode: EditModeController,
        handle_radius: float = 10.0,
        frame_interval_ms: int = 16,
        parent=None,
    ):
        super().__init__(parent)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)

        self.session = session
        self.edit_mode = edit_mode
        self.drag = CornerDragAdapter(session, edit_mode, handle_radius)
        self.media: Optional[VideoSource] = None

        self.timer = QtCore.QTimer(self)
        self.timer.setInterval(frame_interval_ms)
        self.timer.timeout.connect(self.update)

        self.handle_radius = handle_radius
        self.bg_color = QColor(18, 18, 18)
        self._placeholder: Optional[np.ndarray] = None

        session.matrixChanged.connect(self._request_repaint)
        session.pointsChanged.connect(self._request_repaint)
        edit_mode.editableChanged.connect(self._on_editable_changed)

    # --- MEDIA ---

    def set_media(self, path: str) -> bool:
        source = VideoSource()
        try:
            source.load(path)
        except MediaLoadError as e:
            _LOGGER.warning("%s", e)
            return False
        if self.media is not None:
            self.media.release()
        self.media = source
        # only videos need a steady repaint
        if source.cap is not None:
            self.timer.start()
        else:
            self.timer.stop()
        self.update()
        return True

    def clear_media(self):
        if self.media is not None:
            self.media.release()
        self.media = None
        self.timer.stop()
        self.update()

    def _content_frame(self, w: int, h: int) -> np.ndarray:
        frame = self.media.get_frame() if self.media is not None else None
        if frame is not None:
            return frame
        if self._placeholder is None or self._placeholder.shape[:2] != (h, w):
            self._placeholder = placeholder_frame((w, h))
        return self._placeholder

    # --- RENDERING ---

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), self.bg_color)

        w, h = self.width(), self.height()
        homography = self.session.homography
        # nothing is drawn until a valid matrix exists
        if homography is not None and w > 0 and h > 0:
            # the retained matrix may predate the latest resize
            solved = self.session.solved_source_rect
            src_size = (
                max(1, int(round(solved.bottom_right.x))),
                max(1, int(round(solved.bottom_right.y))),
            )
            warped = warp_frame(self._content_frame(*src_size), homography, (w, h), src_size)

            quad = apply_homography(homography, solved.as_tuples())
            path = QPainterPath()
            path.moveTo(*quad[0])
            for x, y in quad[1:]:
                path.lineTo(x, y)
            path.closeSubpath()

            painter.save()
            painter.setClipPath(path)
            painter.drawImage(0, 0, cv_to_qimage(warped))
            painter.restore()

        if self.edit_mode.editable:
            self.draw_overlay(painter)
        painter.end()

    def draw_overlay(self, painter: QPainter):
        homography = self.session.homography
        if homography is not None:
            self.draw_guides(painter, homography)

        quad = self.session.points.as_list()
        painter.setPen(QPen(QColor(255, 180, 0, 230), 2, Qt.SolidLine))
        for i in range(4):
            a = quad[i]
            b = quad[(i + 1) % 4]
            painter.drawLine(QPointF(a.x, a.y), QPointF(b.x, b.y))

        # Handles
        r = self.handle_radius
        for c in quad:
            painter.setBrush(QBrush(QColor(255, 255, 255)))
            painter.setPen(QPen(Qt.black, 1))
            painter.drawEllipse(QPointF(c.x, c.y), r, r)

        painter.setPen(QPen(QColor(220, 220, 220)))
        painter.drawText(
            QRect(10, 10, 500, 60),
            Qt.AlignLeft | Qt.AlignTop,
            "Edit mode: drag corner handles to align.\nShift+%s leaves edit mode."
            % "/".join(k.upper() for k in self.edit_mode.toggle_keys),
        )

    def draw_guides(self, painter: QPainter, homography: np.ndarray):
        """Rule-of-thirds lines of the source rectangle, mapped onto the quad."""
        solved = self.session.solved_source_rect
        w, h = solved.bottom_right.x, solved.bottom_right.y
        segments = []
        for t in (1 / 3, 2 / 3):
            segments.append(((w * t, 0.0), (w * t, h)))
            segments.append(((0.0, h * t), (w, h * t)))
        ends = apply_homography(homography, [p for seg in segments for p in seg])
        if not np.all(np.isfinite(ends)):
            return
        painter.setPen(QPen(QColor(0, 200, 255, 160), 1, Qt.DashLine))
        for i in range(0, len(ends), 2):
            painter.drawLine(QPointF(*ends[i]), QPointF(*ends[i + 1]))

    # --- INPUT ---

    def resizeEvent(self, event):
        size = event.size()
        self.session.resize(size.width(), size.height())
        super().resizeEvent(event)

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            pos = event.position()
            if self.drag.press(pos.x(), pos.y()):
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        pos = event.position()
        if self.drag.drag_to(pos.x(), pos.y()):
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.drag.release()
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):
        shift = bool(event.modifiers() & Qt.ShiftModifier)
        if self.edit_mode.handle_key(event.text(), shift):
            return
        super().keyPressEvent(event)

    def _request_repaint(self, *_):
        self.update()

    def _on_editable_changed(self, editable: bool):
        if not editable:
            self.drag.release()
        self.update()
