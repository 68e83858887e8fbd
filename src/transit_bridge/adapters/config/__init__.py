"""Configuration adapters."""

from transit_bridge.adapters.config.app_config import TransitConfig

__all__ = ["TransitConfig"]
