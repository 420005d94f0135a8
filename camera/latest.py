# -- coding: utf-8 --

import logging
from contextlib import contextmanager

from camera.base import FrameSource, SourceConfig, register_source
from core.contracts import Frame

L = logging.getLogger("depth_capture.camera.latest")


@register_source("latest")
class LatestFrameSource(FrameSource):
    """Holds the newest frame pushed by a sensor callback; reads never block."""

    def __init__(self, cfg: SourceConfig | None = None):
        super().__init__(cfg or SourceConfig())
        self._frame: Frame | None = None
        self._published = 0

    def publish(self, frame: Frame):
        with self.lock:
            self._frame = frame
            self._published += 1

    def current_frame(self) -> Frame | None:
        with self.lock:
            return self._frame

    @property
    def published_count(self) -> int:
        with self.lock:
            return self._published

    def clear(self):
        with self.lock:
            self._frame = None

    @contextmanager
    def session(self):
        """Frames published during the session are dropped when it ends."""
        try:
            yield self
        finally:
            self.clear()
            L.debug("latest source session closed published=%d", self.published_count)


__all__ = ["LatestFrameSource"]
