"""YAML loader and section builders for capture configuration."""

from __future__ import annotations

import glob
import os
from typing import Any

import yaml

from .schema import (
    CaptureConfigBlock,
    ConfigError,
    LoadedConfig,
    RuntimeConfig,
    SourceConfigBlock,
    StorageConfigBlock,
)

_SECTIONS = {
    "runtime": RuntimeConfig,
    "source": SourceConfigBlock,
    "capture": CaptureConfigBlock,
    "storage": StorageConfigBlock,
}


def load_config(config_dir: str = "config") -> LoadedConfig:
    main_path = _find_main_config(config_dir)
    main_data = _read_yaml(main_path)
    for key in main_data:
        if key not in _SECTIONS:
            raise ConfigError(f"Unknown section '{key}' in {main_path}")
    blocks = {
        name: _build_dataclass(cls, main_data.get(name), main_path, section=name)
        for name, cls in _SECTIONS.items()
    }
    return LoadedConfig(**blocks, paths={"main": main_path})


def _find_main_config(config_dir: str) -> str:
    patterns = [
        os.path.join(config_dir, "main_*.yaml"),
        os.path.join(config_dir, "main_*.yml"),
    ]
    candidates: list[str] = []
    for pattern in patterns:
        candidates.extend(glob.glob(pattern))
    if len(candidates) == 0:
        raise ConfigError(f"No main_*.yaml found under {config_dir}")
    if len(candidates) > 1:
        raise ConfigError(
            f"Expected exactly one main_*.yaml, found: {', '.join(sorted(candidates))}"
        )
    return candidates[0]


def _read_yaml(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return data


def _build_dataclass(cls, data: Any, main_path: str, section: str):
    obj = cls()
    if data is None:
        return obj
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a mapping in {main_path}")
    fields = cls.__dataclass_fields__
    for k, v in data.items():
        if k not in fields:
            raise ConfigError(f"Unknown field {section}.{k} in {main_path}")
        setattr(obj, k, v)
    return obj


__all__ = ["load_config"]
