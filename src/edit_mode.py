"""Edit-mode toggling, either self-managed or owned by the caller."""

import logging
from typing import Iterable, Optional, Tuple

from PySide6.QtCore import QObject, Signal

_LOGGER = logging.getLogger(__name__)

DEFAULT_TOGGLE_KEYS: Tuple[str, ...] = ("p",)


class EditModeController(QObject):
    """Tracks whether corner handles are editable.

    With ``editable=None`` the controller owns the flag and flips it itself.
    With a bool it is externally owned: toggles are only reported through
    ``toggleRequested`` and the owner pushes the new value via ``set_editable``.
    """

    editableChanged = Signal(bool)
    toggleRequested = Signal(bool)

    def __init__(
        self,
        editable: Optional[bool] = None,
        toggle_keys: Iterable[str] = DEFAULT_TOGGLE_KEYS,
        parent=None,
    ):
        super().__init__(parent)
        self._external = editable is not None
        self._editable = bool(editable)
        self.toggle_keys = tuple(k.lower() for k in toggle_keys)

    @property
    def is_external(self) -> bool:
        return self._external

    @property
    def editable(self) -> bool:
        return self._editable

    def set_editable(self, value: bool) -> None:
        value = bool(value)
        if value == self._editable:
            return
        self._editable = value
        self.editableChanged.emit(value)

    def toggle(self) -> None:
        requested = not self._editable
        if self._external:
            _LOGGER.debug("Requesting edit mode %s from owner", requested)
            self.toggleRequested.emit(requested)
        else:
            self.set_editable(requested)

    def handle_key(self, key: str, shift: bool) -> bool:
        """Shift + one of the toggle keys flips edit mode; returns True if consumed."""
        if not shift or not key:
            return False
        if key.lower() not in self.toggle_keys:
            return False
        self.toggle()
        return True
