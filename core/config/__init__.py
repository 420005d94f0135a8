"""Config package facade."""

from .loader import load_config
from .schema import (
    CaptureConfigBlock,
    ConfigError,
    LoadedConfig,
    RuntimeConfig,
    SourceConfigBlock,
    StorageConfigBlock,
)
from .validate import known_pixel_formats, validate_config

__all__ = [
    "CaptureConfigBlock",
    "ConfigError",
    "LoadedConfig",
    "RuntimeConfig",
    "SourceConfigBlock",
    "StorageConfigBlock",
    "known_pixel_formats",
    "load_config",
    "validate_config",
]
