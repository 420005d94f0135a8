# -- coding: utf-8 --

import logging
import os
import tempfile
from datetime import datetime, timezone

from core.contracts import ArtifactKind
from core.errors import StorageError
from storage.base import BaseStorage, register_storage
from utils.path_time import UtcDailyDirCache

L = logging.getLogger("depth_capture.storage.local")


def _atomic_write(path: str, data: bytes):
    target_dir = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=target_dir)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


@register_storage("local")
class LocalDirStorage(BaseStorage):
    """Files under `root_dir`, optionally grouped into UTC date directories."""

    def __init__(self, root_dir: str, dated_dirs: bool = False):
        super().__init__()
        self.root_dir = root_dir
        self.dated_dirs = dated_dirs
        self._date_cache = UtcDailyDirCache()

    def _target_dir(self) -> str:
        if self.dated_dirs:
            return self._date_cache.get_or_create(
                self.root_dir, datetime.now(timezone.utc)
            )
        os.makedirs(self.root_dir, exist_ok=True)
        return self.root_dir

    def save(self, kind: ArtifactKind, name: str, data: bytes) -> str:
        if not name or os.path.basename(name) != name:
            raise StorageError(f"invalid artifact name {name!r}")
        try:
            with self.lock:
                path = os.path.join(self._target_dir(), name)
                _atomic_write(path, data)
        except OSError as e:
            raise StorageError(f"write failed for {name}: {e}") from e
        L.debug("saved %s kind=%s bytes=%d", path, kind.value, len(data))
        return path

    def list_saved(self, kind: ArtifactKind | None = None) -> list[str]:
        if not os.path.isdir(self.root_dir):
            return []
        suffix = f".{kind.ext}" if kind is not None else None
        paths = []
        for dirpath, _dirnames, filenames in os.walk(self.root_dir):
            for name in filenames:
                if name.startswith(".tmp_"):
                    continue
                if suffix and not name.endswith(suffix):
                    continue
                paths.append(os.path.join(dirpath, name))
        return sorted(paths, key=lambda p: (os.path.getmtime(p), p), reverse=True)

    def describe(self) -> str:
        return self.root_dir


__all__ = ["LocalDirStorage"]
