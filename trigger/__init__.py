from .base import (
    DEFAULT_INTERVAL_MS,
    TriggerConfig,
    BaseTrigger,
    register_trigger,
    create_trigger,
    build_trigger_config_from_loaded_config,
)
from .periodic import PeriodicTrigger

__all__ = [
    "DEFAULT_INTERVAL_MS",
    "TriggerConfig",
    "BaseTrigger",
    "register_trigger",
    "create_trigger",
    "build_trigger_config_from_loaded_config",
    "PeriodicTrigger",
]
