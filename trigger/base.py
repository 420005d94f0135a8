# -- coding: utf-8 --

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Type

from core.registry import register_named, resolve_registered

TriggerFactory = Dict[str, Type["BaseTrigger"]]
_registry: TriggerFactory = {}

DEFAULT_INTERVAL_MS = 100.0


@dataclass
class TriggerConfig:
    interval_ms: float = DEFAULT_INTERVAL_MS
    join_timeout_s: float = 2.0


class BaseTrigger(ABC):
    def __init__(self, cfg: TriggerConfig, on_trigger: Callable[[int], None]):
        self.cfg = cfg
        self.on_trigger = on_trigger

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def stop(self):
        """Stop firing; once this returns no further on_trigger call starts."""

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


def register_trigger(name: str):
    return register_named(_registry, name)


def create_trigger(
    name: str, cfg: TriggerConfig, on_trigger: Callable[[int], None], **kwargs
) -> BaseTrigger:
    cls = resolve_registered(
        _registry,
        name,
        package=__package__ or "trigger",
        unknown_label="trigger type",
    )
    return cls(cfg, on_trigger, **kwargs)


def build_trigger_config_from_loaded_config(cfg) -> TriggerConfig:
    return TriggerConfig(interval_ms=float(cfg.capture.interval_ms))


__all__ = [
    "DEFAULT_INTERVAL_MS",
    "TriggerConfig",
    "BaseTrigger",
    "register_trigger",
    "create_trigger",
    "build_trigger_config_from_loaded_config",
]
