import logging
from typing import Optional

from edit_mode import EditModeController
from points import CORNER_NAMES, Corner, normalize_corner_name
from transform_session import TransformSession

_LOGGER = logging.getLogger(__name__)


class CornerDragAdapter:
    """Turns pointer positions (container pixels) into corner moves on a session."""

    def __init__(
        self,
        session: TransformSession,
        edit_mode: EditModeController,
        handle_radius: float = 10.0,
    ):
        self.session = session
        self.edit_mode = edit_mode
        self.handle_radius = float(handle_radius)
        self._active: Optional[str] = None

    @property
    def active_corner(self) -> Optional[str]:
        return self._active

    @property
    def is_dragging(self) -> bool:
        return self._active is not None

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """Return the first corner whose handle is under (x, y), else None."""
        reach = self.handle_radius * 1.5
        for name in CORNER_NAMES:
            c = self.session.points.corner(name)
            if abs(x - c.x) + abs(y - c.y) <= reach:
                return name
        return None

    def begin_drag(self, name: str) -> None:
        self._active = normalize_corner_name(name)

    def press(self, x: float, y: float) -> bool:
        if not self.edit_mode.editable:
            return False
        name = self.hit_test(x, y)
        if name is None:
            return False
        _LOGGER.debug("Dragging %s", name)
        self.begin_drag(name)
        return True

    def drag_to(self, x: float, y: float) -> bool:
        if self._active is None or not self.edit_mode.editable:
            return False
        # corners may leave the container or fold the quad over
        self.session.move_corner(self._active, Corner(x, y))
        return True

    def release(self) -> None:
        self._active = None
