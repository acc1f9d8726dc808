"""JSON-file key/value store for perspective corner points."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from transform_session import TransformSession

_LOGGER = logging.getLogger(__name__)


def default_store_path() -> Path:
    """Return the per-platform location of the points file."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "quadwarp" / "points.json"
        return Path.home() / "AppData" / "Roaming" / "quadwarp" / "points.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "quadwarp" / "points.json"
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "quadwarp" / "points.json"
    return Path.home() / ".config" / "quadwarp" / "points.json"


class PointStore:
    """Durable mapping of storage keys to serialized points.

    Failures are logged and degrade: ``load`` returns None, ``save`` returns False.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else default_store_path()

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object in {self.path}")
        return data

    def load(self, key: str) -> Optional[dict]:
        try:
            data = self._read_all()
        except (OSError, ValueError) as exc:
            _LOGGER.warning("Failed to read stored perspective points from %s: %s", self.path, exc)
            return None
        payload = data.get(key)
        _LOGGER.debug("Loaded points for %r: %s", key, payload)
        return payload

    def save(self, key: str, payload: dict) -> bool:
        try:
            try:
                data = self._read_all()
            except ValueError:
                _LOGGER.warning("Overwriting unreadable points file %s", self.path)
                data = {}
            data[key] = payload
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as exc:
            _LOGGER.error("Failed to store perspective points: %s", exc)
            return False
        return True


def attach_store(session: TransformSession, store: PointStore, key: str) -> bool:
    """Hydrate ``session`` from ``store`` and persist every later change under ``key``.

    Returns True when stored points were applied.
    """
    stored = None if session.controlled else store.load(key)
    accepted = session.hydrate(stored)
    session.persistRequested.connect(lambda payload: store.save(key, payload))
    return accepted
