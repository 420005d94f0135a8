from .base import (
    BaseStorage,
    register_storage,
    create_storage,
    create_storage_from_loaded_config,
)

__all__ = [
    "BaseStorage",
    "register_storage",
    "create_storage",
    "create_storage_from_loaded_config",
]
