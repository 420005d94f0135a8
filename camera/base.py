# -- coding: utf-8 --

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Type

from core.contracts import Frame
from core.registry import register_named, resolve_registered

SourceFactory = Dict[str, Type["FrameSource"]]
_registry: SourceFactory = {}


@dataclass
class SourceConfig:
    width: int = 64
    height: int = 48
    depth_width: int = 32
    depth_height: int = 24
    pixel_format: str = "depth_float32"
    row_padding_bytes: int = 0
    smoothed_only: bool = False


def build_source_config(cfg_block) -> SourceConfig:
    return SourceConfig(
        width=int(cfg_block.width),
        height=int(cfg_block.height),
        depth_width=int(cfg_block.depth_width),
        depth_height=int(cfg_block.depth_height),
        pixel_format=_normalize_pixel_format(cfg_block.pixel_format),
        row_padding_bytes=int(cfg_block.row_padding_bytes),
        smoothed_only=bool(cfg_block.smoothed_only),
    )


def _normalize_pixel_format(value: object) -> str:
    fmt = str(value or "").strip().lower()
    return fmt or "depth_float32"


class FrameSource(ABC):
    def __init__(self, cfg: SourceConfig):
        self.cfg = cfg
        self.lock = threading.Lock()

    @abstractmethod
    def current_frame(self) -> Frame | None:
        """Most recently observed frame, or None before the first one arrives."""

    @contextmanager
    def session(self):
        """Manage sensor lifecycle."""
        yield self


def register_source(name: str):
    return register_named(_registry, name)


def create_source(name: str, cfg: SourceConfig) -> FrameSource:
    cls = resolve_registered(
        _registry,
        name,
        package=__package__ or "camera",
        unknown_label="frame source type",
    )
    return cls(cfg)


def create_source_from_loaded_config(cfg) -> FrameSource:
    return create_source(cfg.source.type, build_source_config(cfg.source))


__all__ = [
    "SourceConfig",
    "build_source_config",
    "FrameSource",
    "register_source",
    "create_source",
    "create_source_from_loaded_config",
]
