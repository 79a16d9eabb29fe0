"""Engine configuration."""

from form_engine.config.engine import EngineConfig

__all__ = ["EngineConfig"]
