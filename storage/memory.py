# -- coding: utf-8 --

from collections import OrderedDict

from core.contracts import ArtifactKind
from core.errors import StorageError
from storage.base import BaseStorage, register_storage


@register_storage("memory")
class MemoryStorage(BaseStorage):
    """In-process album: named blobs kept in save order."""

    def __init__(self):
        super().__init__()
        self._items: OrderedDict[str, tuple[ArtifactKind, bytes]] = OrderedDict()

    def save(self, kind: ArtifactKind, name: str, data: bytes) -> str:
        if not name:
            raise StorageError("empty artifact name")
        with self.lock:
            self._items[name] = (kind, bytes(data))
            self._items.move_to_end(name)
        return name

    def load(self, name: str) -> bytes:
        with self.lock:
            try:
                return self._items[name][1]
            except KeyError:
                raise StorageError(f"no artifact named {name!r}") from None

    def list_saved(self, kind: ArtifactKind | None = None) -> list[str]:
        with self.lock:
            names = [
                n for n, (k, _data) in self._items.items() if kind is None or k == kind
            ]
        return names[::-1]

    def describe(self) -> str:
        return "memory"

    def __len__(self) -> int:
        with self.lock:
            return len(self._items)


__all__ = ["MemoryStorage"]
