# -- coding: utf-8 --

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Type

from core.contracts import ArtifactKind, EncodedArtifact, SaveOutcome
from core.errors import StorageError
from core.registry import register_named, resolve_registered

L = logging.getLogger("depth_capture.storage")

StorageFactory = Dict[str, Type["BaseStorage"]]
_registry: StorageFactory = {}


class BaseStorage(ABC):
    def __init__(self):
        self.lock = threading.Lock()

    @abstractmethod
    def save(self, kind: ArtifactKind, name: str, data: bytes) -> str:
        """Persist one blob, returning its location. Raises StorageError."""

    @abstractmethod
    def list_saved(self, kind: ArtifactKind | None = None) -> list[str]:
        """Saved names/locations, newest first."""

    def describe(self) -> str:
        return ""

    def save_all(self, artifacts: Iterable[EncodedArtifact]) -> list[SaveOutcome]:
        outcomes: list[SaveOutcome] = []
        for artifact in artifacts:
            try:
                location = self.save(artifact.kind, artifact.name, artifact.data)
            except StorageError as e:
                L.warning("save failed name=%s err=%s", artifact.name, e)
                outcomes.append(SaveOutcome(artifact=artifact, error=e))
                continue
            outcomes.append(SaveOutcome(artifact=artifact, location=location))
        return outcomes


def register_storage(name: str):
    return register_named(_registry, name)


def create_storage(name: str, **kwargs) -> BaseStorage:
    cls = resolve_registered(
        _registry,
        name,
        package=__package__ or "storage",
        unknown_label="storage type",
    )
    return cls(**kwargs)


def create_storage_from_loaded_config(cfg) -> BaseStorage:
    kind = str(cfg.storage.type or "local").strip().lower()
    if kind == "local":
        root_dir = cfg.storage.root_dir or os.path.join(
            cfg.runtime.save_dir, "captures"
        )
        return create_storage(
            kind, root_dir=root_dir, dated_dirs=bool(cfg.storage.dated_dirs)
        )
    return create_storage(kind)


__all__ = [
    "BaseStorage",
    "register_storage",
    "create_storage",
    "create_storage_from_loaded_config",
]
