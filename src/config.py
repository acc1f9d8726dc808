"""Application configuration, read from an optional JSON file and CLI overrides."""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft202012Validator, ValidationError

from errors import ConfigError
from point_store import default_store_path

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA: Dict[str, Any] = {
    "$id": "quadwarp/config.schema.json",
    "type": "object",
    "properties": {
        "store_path": {"type": "string", "minLength": 1},
        "storage_key": {"type": "string", "minLength": 1},
        "toggle_keys": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "minItems": 1,
                },
            ]
        },
        "handle_radius": {"type": "number", "exclusiveMinimum": 0},
        "frame_interval_ms": {"type": "integer", "minimum": 1},
        "log_level": {
            "type": "string",
            "pattern": "(?i)^(debug|info|warning|error|critical)$",
        },
        "media_path": {"type": ["string", "null"]},
    },
    "additionalProperties": True,
}

_validator = Draft202012Validator(CONFIG_SCHEMA)


@dataclass(frozen=True)
class AppConfig:
    store_path: Path = field(default_factory=default_store_path)
    storage_key: str = "perspective-points"
    toggle_keys: Tuple[str, ...] = ("p",)
    handle_radius: float = 10.0
    frame_interval_ms: int = 16  # ~60 fps
    log_level: str = "INFO"
    media_path: Optional[str] = None

    def with_overrides(self, **values) -> "AppConfig":
        """Return a copy with every non-None value applied."""
        return replace(self, **_coerce({k: v for k, v in values.items() if v is not None}))


def _coerce(values: dict) -> dict:
    out = dict(values)
    if "store_path" in out:
        out["store_path"] = Path(out["store_path"]).expanduser()
    if "toggle_keys" in out:
        keys = out["toggle_keys"]
        out["toggle_keys"] = (keys,) if isinstance(keys, str) else tuple(keys)
    if "handle_radius" in out:
        out["handle_radius"] = float(out["handle_radius"])
    if "log_level" in out:
        out["log_level"] = out["log_level"].upper()
    return out


def validate_config(data: Dict[str, Any]) -> None:
    """Validate a config mapping against :data:`CONFIG_SCHEMA`."""
    _validator.validate(data)


def load_config(path: Optional[Path] = None) -> AppConfig:
    config = AppConfig()
    if path is None:
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    try:
        validate_config(data)
    except ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"invalid config {path} at {where}: {exc.message}") from exc

    known = {f.name for f in fields(AppConfig)}
    for key in sorted(set(data) - known):
        _LOGGER.warning("Ignoring unknown config key %r in %s", key, path)
    return config.with_overrides(**{k: v for k, v in data.items() if k in known})
