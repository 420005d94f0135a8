"""Typed config schema blocks shared by loader/validator/runtime."""

from dataclasses import dataclass, field
from typing import Dict


class ConfigError(Exception):
    pass


@dataclass
class RuntimeConfig:
    save_dir: str = "data"
    max_runtime_s: float = 0.0
    log_level: str = "info"


@dataclass
class SourceConfigBlock:
    type: str = "mock"
    width: int = 64
    height: int = 48
    depth_width: int = 32
    depth_height: int = 24
    pixel_format: str = "depth_float32"
    row_padding_bytes: int = 0
    smoothed_only: bool = False


@dataclass
class CaptureConfigBlock:
    mode: str = "continuous"
    interval_ms: float = 100.0


@dataclass
class StorageConfigBlock:
    type: str = "local"
    root_dir: str = ""
    dated_dirs: bool = False


@dataclass
class LoadedConfig:
    runtime: RuntimeConfig
    source: SourceConfigBlock
    capture: CaptureConfigBlock
    storage: StorageConfigBlock
    paths: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "ConfigError",
    "RuntimeConfig",
    "SourceConfigBlock",
    "CaptureConfigBlock",
    "StorageConfigBlock",
    "LoadedConfig",
]
