import logging
from typing import Optional

import cv2
import numpy as np

from errors import MediaLoadError

_LOGGER = logging.getLogger(__name__)


class VideoSource:
    """Content for the warped quad: a still image or a looping video."""

    def __init__(self):
        self.cap: Optional[cv2.VideoCapture] = None
        self.single_frame: Optional[np.ndarray] = None
        self.path: Optional[str] = None

    def load(self, path: str):
        self.release()
        # Try video first
        cap = cv2.VideoCapture(path)
        if cap.isOpened() and int(cap.get(cv2.CAP_PROP_FRAME_COUNT)) > 1:
            self.cap = cap
            self.path = path
            _LOGGER.info("Opened video %s", path)
            return
        cap.release()
        img = cv2.imread(path, cv2.IMREAD_COLOR)
        if img is None:
            raise MediaLoadError(f"Failed to load media {path!r}. Unsupported or missing file.")
        self.single_frame = img
        self.path = path
        _LOGGER.info("Opened image %s", path)

    def release(self):
        if self.cap is not None:
            self.cap.release()
        self.cap = None
        self.single_frame = None
        self.path = None

    def get_frame(self) -> Optional[np.ndarray]:
        if self.cap is not None:
            ok, frame = self.cap.read()
            if not ok:
                # loop
                self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
                ok, frame = self.cap.read()
            return frame if ok else None
        return self.single_frame
