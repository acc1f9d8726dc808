"""Mutable corner state and the render matrix derived from it."""

import enum
import logging
from typing import Optional, Tuple

import numpy as np
from PySide6.QtCore import QObject, Signal

from errors import DegenerateMappingError, InvalidPointsError
from homography import solve_homography, to_render_matrix
from points import DEFAULT_SIZE, Corner, Points

_LOGGER = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class TransformSession(QObject):
    """Owns the four corners and recomputes the warp whenever they or the container change.

    All entry points run synchronously; each event triggers at most one
    ``recompute()``. A degenerate quad never replaces the last valid matrix.
    """

    pointsChanged = Signal(object)
    matrixChanged = Signal(object)
    persistRequested = Signal(object)
    degenerateMapping = Signal(object)

    def __init__(self, points: Optional[Points] = None, controlled: bool = False, parent=None):
        super().__init__(parent)
        self._points: Points = points if points is not None else Points.default()
        self._controlled = controlled
        self._hydrated = False
        self._auto_fit = not controlled
        self._size: Tuple[float, float] = (0.0, 0.0)
        self._state = SessionState.UNINITIALIZED
        self._homography: Optional[np.ndarray] = None
        self._render_matrix: Optional[Tuple[float, ...]] = None
        self._solved_size: Optional[Tuple[float, float]] = None

    # ------------------------------------------------------------------
    # Readable state
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def points(self) -> Points:
        return self._points

    @property
    def size(self) -> Tuple[float, float]:
        return self._size

    @property
    def controlled(self) -> bool:
        return self._controlled

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def auto_fit_enabled(self) -> bool:
        return self._auto_fit

    @property
    def source_rect(self) -> Optional[Points]:
        """The container's own bounding box, or None before the first measurement."""
        if self._state is SessionState.UNINITIALIZED:
            return None
        return Points.rectangle(*self._size)

    @property
    def solved_source_rect(self) -> Optional[Points]:
        """The container rectangle the current homography was solved for."""
        if self._solved_size is None:
            return None
        return Points.rectangle(*self._solved_size)

    @property
    def homography(self) -> Optional[np.ndarray]:
        return None if self._homography is None else self._homography.copy()

    @property
    def render_matrix(self) -> Optional[Tuple[float, ...]]:
        return self._render_matrix

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def resize(self, width: float, height: float) -> None:
        """Handle a container measurement."""
        width, height = float(width), float(height)
        if width <= 0 or height <= 0:
            _LOGGER.debug("Ignoring empty container measurement %sx%s", width, height)
            return

        self._size = (width, height)
        if self._state is SessionState.UNINITIALIZED:
            _LOGGER.debug("Session active at %sx%s", width, height)
            self._state = SessionState.ACTIVE

        if self._auto_fit:
            # top-left stays pinned at the origin
            fitted = Points(
                top_left=self._points.top_left,
                top_right=Corner(width, 0.0),
                bottom_right=Corner(width, height),
                bottom_left=Corner(0.0, height),
            )
            if fitted != self._points:
                self._points = fitted
                self._emit_points()
        self.recompute()

    def move_corner(self, name: str, position) -> None:
        """Replace one corner, leaving the other three untouched. No clamping."""
        updated = self._points.with_corner(name, position)
        if updated == self._points:
            return
        self._points = updated
        self._emit_points()
        self.recompute()

    def set_points(self, points) -> None:
        """Wholesale replacement from an external owner or a reload."""
        if not isinstance(points, Points):
            points = Points.from_dict(points)
        self._auto_fit = False
        if points == self._points:
            return
        self._points = points
        self._emit_points()
        self.recompute()

    def reset(self) -> None:
        """Snap the corners back to the container rectangle and resume auto-fit."""
        if not self._controlled:
            self._auto_fit = True
        if self._state is SessionState.ACTIVE:
            width, height = self._size
        else:
            width = height = DEFAULT_SIZE
        rect = Points.rectangle(width, height)
        if rect != self._points:
            self._points = rect
            self._emit_points()
            self.recompute()

    def hydrate(self, stored) -> bool:
        """Complete the initial load attempt; returns True when stored points were accepted."""
        if self._hydrated:
            _LOGGER.debug("Session already hydrated; ignoring stored points")
            return False
        if self._controlled:
            # an external owner supplies the points; storage is not consulted
            return False

        accepted = False
        if stored is not None:
            try:
                loaded = Points.from_dict(stored)
            except InvalidPointsError as exc:
                _LOGGER.warning("Discarding stored perspective points: %s", exc)
            else:
                self._auto_fit = False
                accepted = True
                if loaded != self._points:
                    self._points = loaded
                    self.pointsChanged.emit(loaded)
                    self.recompute()

        self._hydrated = True
        return accepted

    def recompute(self) -> bool:
        """Solve for the current corners; keep the previous matrix on failure."""
        if self._state is SessionState.UNINITIALIZED:
            return False

        width, height = self._size
        source = [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]
        try:
            h = solve_homography(source, self._points.as_tuples())
        except DegenerateMappingError as exc:
            _LOGGER.debug("Keeping previous render matrix: %s", exc)
            self.degenerateMapping.emit(self._points)
            return False

        self._homography = h
        self._solved_size = (width, height)
        self._render_matrix = to_render_matrix(h)
        self.matrixChanged.emit(self._render_matrix)
        return True

    def _emit_points(self) -> None:
        self.pointsChanged.emit(self._points)
        if self._hydrated and not self._controlled:
            self.persistRequested.emit(self._points.to_dict())
