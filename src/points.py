"""Corner and four-corner quad model shared by the session, store and canvas."""

import math
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Tuple

from errors import InvalidPointsError

# fixed destination order fed to the solver
CORNER_NAMES: Tuple[str, ...] = ("top_left", "top_right", "bottom_right", "bottom_left")

# storage shape keys
STORAGE_KEYS: Dict[str, str] = {
    "top_left": "topLeft",
    "top_right": "topRight",
    "bottom_right": "bottomRight",
    "bottom_left": "bottomLeft",
}
_FROM_STORAGE = {v: k for k, v in STORAGE_KEYS.items()}

DEFAULT_SIZE = 100.0


def normalize_corner_name(name: str) -> str:
    """Accept ``top_right`` or ``topRight``; raise ValueError for anything else."""
    if name in STORAGE_KEYS:
        return name
    if name in _FROM_STORAGE:
        return _FROM_STORAGE[name]
    raise ValueError(f"unknown corner: {name!r}")


@dataclass(frozen=True)
class Corner:
    """A point in container pixels, origin at the container's top-left."""

    x: float
    y: float

    def __post_init__(self):
        x, y = float(self.x), float(self.y)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"corner coordinates must be finite, got ({x}, {y})")
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @classmethod
    def coerce(cls, value) -> "Corner":
        if isinstance(value, Corner):
            return value
        if isinstance(value, Mapping):
            return cls(value["x"], value["y"])
        if hasattr(value, "x") and hasattr(value, "y"):
            # QPointF and friends expose x()/y() as methods
            x, y = value.x, value.y
            return cls(x() if callable(x) else x, y() if callable(y) else y)
        x, y = value
        return cls(x, y)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Points:
    """The four named corners of the destination quad."""

    top_left: Corner
    top_right: Corner
    bottom_right: Corner
    bottom_left: Corner

    @classmethod
    def rectangle(cls, width: float, height: float) -> "Points":
        """Axis-aligned rectangle anchored at the origin."""
        return cls(
            top_left=Corner(0.0, 0.0),
            top_right=Corner(width, 0.0),
            bottom_right=Corner(width, height),
            bottom_left=Corner(0.0, height),
        )

    @classmethod
    def default(cls) -> "Points":
        return cls.rectangle(DEFAULT_SIZE, DEFAULT_SIZE)

    @classmethod
    def from_dict(cls, payload) -> "Points":
        """Build Points from the storage shape, rejecting partial or malformed data."""
        if not isinstance(payload, Mapping):
            raise InvalidPointsError(f"expected a mapping, got {type(payload).__name__}")
        corners = {}
        for name, key in STORAGE_KEYS.items():
            raw = payload.get(key)
            if not isinstance(raw, Mapping):
                raise InvalidPointsError(f"missing corner {key!r}")
            x, y = raw.get("x"), raw.get("y")
            if isinstance(x, bool) or isinstance(y, bool):
                raise InvalidPointsError(f"corner {key!r} has non-numeric coordinates")
            if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
                raise InvalidPointsError(f"corner {key!r} has non-numeric coordinates")
            try:
                corners[name] = Corner(x, y)
            except ValueError as exc:
                raise InvalidPointsError(f"corner {key!r}: {exc}") from exc
        return cls(**corners)

    def corner(self, name: str) -> Corner:
        return getattr(self, normalize_corner_name(name))

    def with_corner(self, name: str, corner) -> "Points":
        """Copy with one corner replaced; the other three are kept as-is."""
        return replace(self, **{normalize_corner_name(name): Corner.coerce(corner)})

    def as_list(self) -> List[Corner]:
        return [getattr(self, name) for name in CORNER_NAMES]

    def as_tuples(self) -> List[Tuple[float, float]]:
        return [(c.x, c.y) for c in self.as_list()]

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {STORAGE_KEYS[name]: getattr(self, name).to_dict() for name in CORNER_NAMES}
