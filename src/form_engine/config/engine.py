"""Engine Configuration for the form engine

Holds the limits applied to user-authored formulas. Values can be given
directly, from a dict, or from a YAML/JSON file; missing keys fall back to
DEFAULT_CONFIG.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import yaml

from form_engine.core.errors import SchemaError


@dataclass(frozen=True)
class EngineConfig:
    """Limits for formula parsing and evaluation"""

    DEFAULT_CONFIG: ClassVar[dict[str, int]] = {
        "max_formula_length": 1000,
        "max_formula_nodes": 200,
        "max_formula_depth": 32,
    }

    max_formula_length: int = DEFAULT_CONFIG["max_formula_length"]
    max_formula_nodes: int = DEFAULT_CONFIG["max_formula_nodes"]
    max_formula_depth: int = DEFAULT_CONFIG["max_formula_depth"]

    def __post_init__(self):
        for key in self.DEFAULT_CONFIG:
            value = getattr(self, key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise SchemaError(f"Config '{key}' must be a positive integer, got {value!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EngineConfig":
        """Build config, merging with defaults for missing keys"""
        data = data or {}
        unknown = set(data) - set(cls.DEFAULT_CONFIG)
        if unknown:
            raise SchemaError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        merged = cls.DEFAULT_CONFIG.copy()
        merged.update(data)
        return cls(**merged)

    @classmethod
    def load(cls, path: Path | str) -> "EngineConfig":
        """Load config from a YAML or JSON file, returning defaults if it does not exist"""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is not None and not isinstance(data, dict):
            raise SchemaError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, int]:
        return {key: getattr(self, key) for key in self.DEFAULT_CONFIG}

    def save(self, path: Path | str) -> None:
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
