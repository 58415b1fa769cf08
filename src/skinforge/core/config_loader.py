"""JSON config file loading utilities."""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from skinforge.constants import CONFIG_DIR, DEFAULT_MAX_INFLUENCES, REMOVE_EMPTY_BONES
from skinforge.errors import InvalidConfigurationError

# Property names as written by importer-side configs
_KEY_ALIASES = {
    "maxWeights": "max_influences",
    "removeEmptyBones": "remove_empty_bones",
}


@dataclass
class LimitConfig:
    """Tunables for the bone-influence limiting step."""
    max_influences: int = DEFAULT_MAX_INFLUENCES
    remove_empty_bones: bool = REMOVE_EMPTY_BONES

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LimitConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfigurationError(f"Unknown limit config key: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path) as f:
        return json.load(f)


def load_config(name: str) -> Any:
    """Load a config file from config/."""
    return load_json(CONFIG_DIR / name)


def load_limit_config(path: str | Path | None = None) -> LimitConfig:
    """Load a LimitConfig from a JSON file (defaults to config/limit_bone_weights.json)."""
    data = load_json(Path(path)) if path is not None else load_config("limit_bone_weights.json")
    if not isinstance(data, dict):
        raise InvalidConfigurationError(
            f"Limit config must be a JSON object, got {type(data).__name__}"
        )
    return LimitConfig.from_dict(data)
