# -- coding: utf-8 --

import logging
from datetime import datetime, timezone

import numpy as np

from camera.base import FrameSource, SourceConfig, register_source
from core.contracts import DepthBuffer, Frame, PixelFormat

L = logging.getLogger("depth_capture.camera.mock")

_NEAR_M = 0.5
_FAR_M = 4.0


def _synthetic_color(width: int, height: int, seq: int) -> np.ndarray:
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[:, :, 0] = xs[np.newaxis, :].astype(np.uint8)
    rgba[:, :, 1] = ys[:, np.newaxis].astype(np.uint8)
    rgba[:, :, 2] = np.uint8((seq * 8) % 256)
    rgba[:, :, 3] = 255
    return rgba


def _synthetic_depth_m(width: int, height: int) -> np.ndarray:
    # Tilted plane: near at the top-left corner, far at the bottom-right.
    xs = np.linspace(0.0, 1.0, width, dtype=np.float32)
    ys = np.linspace(0.0, 1.0, height, dtype=np.float32)
    ramp = (xs[np.newaxis, :] + ys[:, np.newaxis]) / 2.0
    return (_NEAR_M + ramp * (_FAR_M - _NEAR_M)).astype(np.float32)


def _pack_rows(texels: np.ndarray, row_padding_bytes: int) -> tuple[bytes, int]:
    height, width = texels.shape
    pad = row_padding_bytes // 4
    rows = np.zeros((height, width + pad), dtype="<f4")
    rows[:, :width] = texels
    return rows.tobytes(), (width + pad) * 4


@register_source("mock")
class MockFrameSource(FrameSource):
    """Synthetic RGBA + depth frames; every read produces a fresh frame."""

    def __init__(self, cfg: SourceConfig):
        super().__init__(cfg)
        if cfg.row_padding_bytes < 0 or cfg.row_padding_bytes % 4:
            raise ValueError(
                f"row_padding_bytes must be a non-negative multiple of 4, got {cfg.row_padding_bytes}"
            )
        self._seq = 0
        self._depth_m = _synthetic_depth_m(cfg.depth_width, cfg.depth_height)

    def _depth_buffer(self) -> DepthBuffer:
        fmt = str(self.cfg.pixel_format)
        texels = self._depth_m
        if fmt == PixelFormat.DISPARITY_RECIPROCAL.value:
            texels = (1.0 / texels).astype(np.float32)
        data, bytes_per_row = _pack_rows(texels, self.cfg.row_padding_bytes)
        try:
            pixel_format = PixelFormat(fmt)
        except ValueError:
            # Unknown sensor tag: passed through so the decoder can reject it.
            pixel_format = fmt
        return DepthBuffer(
            data=data,
            pixel_format=pixel_format,
            width=self.cfg.depth_width,
            height=self.cfg.depth_height,
            bytes_per_row=bytes_per_row,
        )

    def current_frame(self) -> Frame | None:
        with self.lock:
            self._seq += 1
            seq = self._seq
        depth = self._depth_buffer()
        frame = Frame(
            color=_synthetic_color(self.cfg.width, self.cfg.height, seq),
            depth=None if self.cfg.smoothed_only else depth,
            smoothed_depth=depth if self.cfg.smoothed_only else None,
            captured_at=datetime.now(timezone.utc),
            seq=seq,
        )
        L.debug("[%5s] mock frame %dx%d", seq, self.cfg.width, self.cfg.height)
        return frame


__all__ = ["MockFrameSource"]
