from typing import Optional, Tuple

import cv2
import numpy as np
from PySide6.QtGui import QImage


def cv_to_qimage(frame_bgr: np.ndarray) -> QImage:
    """Convert OpenCV BGR ndarray to QImage (RGB888)."""
    if frame_bgr is None:
        return QImage()
    if len(frame_bgr.shape) == 2:
        # Grayscale
        h, w = frame_bgr.shape
        qimg = QImage(frame_bgr.data, w, h, w, QImage.Format_Grayscale8)
        return qimg.copy()
    # Color
    frame_rgb = np.ascontiguousarray(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB))
    h, w, ch = frame_rgb.shape
    bytes_per_line = ch * w
    qimg = QImage(frame_rgb.data, w, h, bytes_per_line, QImage.Format_RGB888)
    return qimg.copy()


def fit_frame(frame: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Stretch a frame to fill the container rectangle (width, height)."""
    w, h = size
    if frame.shape[1] == w and frame.shape[0] == h:
        return frame
    return cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)


def placeholder_frame(size: Tuple[int, int], cell: int = 40) -> np.ndarray:
    """Checkerboard with a border, shown when no media is loaded."""
    w, h = max(1, int(size[0])), max(1, int(size[1]))
    ys, xs = np.mgrid[0:h, 0:w]
    checker = ((xs // cell) + (ys // cell)) % 2
    frame = np.where(checker[..., None] == 0, (70, 60, 50), (110, 95, 80)).astype(np.uint8)
    cv2.rectangle(frame, (0, 0), (w - 1, h - 1), (0, 180, 255), 3)
    return frame


def warp_frame(
    frame: np.ndarray,
    h: Optional[np.ndarray],
    size: Tuple[int, int],
    source_size: Optional[Tuple[int, int]] = None,
) -> Optional[np.ndarray]:
    """Warp a frame through homography ``h`` into a (width, height) buffer.

    The frame is first stretched to ``source_size`` (the rectangle ``h`` was
    solved for), defaulting to the output size.
    """
    if h is None:
        return None
    return cv2.warpPerspective(fit_frame(frame, source_size or size), h, size)
