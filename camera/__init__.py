from .base import (
    SourceConfig,
    build_source_config,
    FrameSource,
    register_source,
    create_source,
    create_source_from_loaded_config,
)

__all__ = [
    "SourceConfig",
    "build_source_config",
    "FrameSource",
    "register_source",
    "create_source",
    "create_source_from_loaded_config",
]
