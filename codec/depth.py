"""Raw depth-sensor buffer -> DepthGrid (meters)."""

import logging

import numpy as np

from core.contracts import DepthBuffer, DepthGrid, PixelFormat
from core.errors import BufferTooShort, UnsupportedFormat

L = logging.getLogger("depth_capture.codec.depth")

_FLOAT32 = np.dtype("<f4")


def _resolve_format(value: object) -> PixelFormat:
    if isinstance(value, PixelFormat):
        return value
    try:
        return PixelFormat(str(value).strip().lower())
    except ValueError:
        raise UnsupportedFormat(value) from None


def _disparity_to_depth(disparity: np.ndarray) -> np.ndarray:
    valid = np.isfinite(disparity) & (disparity > 0)
    depth = np.zeros_like(disparity)
    np.divide(1.0, disparity, out=depth, where=valid)
    return depth


class DepthDecoder:
    """Decode float32 depth or disparity maps, honoring padded row strides.

    Rows may carry trailing padding (bytes_per_row > width * 4); only the first
    `width` floats of every row are kept. Disparity texels that are zero,
    negative, or non-finite decode to 0.0 ("no depth") instead of failing.
    """

    def decode(
        self,
        buffer: bytes,
        pixel_format,
        width: int,
        height: int,
        bytes_per_row: int,
    ) -> DepthGrid:
        width = int(width)
        height = int(height)
        bytes_per_row = int(bytes_per_row)
        if width <= 0 or height <= 0:
            raise ValueError(f"depth dimensions must be > 0, got {width}x{height}")
        if bytes_per_row <= 0 or bytes_per_row % _FLOAT32.itemsize:
            raise ValueError(
                f"bytes_per_row must be a positive multiple of 4, got {bytes_per_row}"
            )
        if bytes_per_row < width * _FLOAT32.itemsize:
            raise ValueError(
                f"bytes_per_row={bytes_per_row} cannot hold {width} float32 texels"
            )
        fmt = _resolve_format(pixel_format)

        needed = height * bytes_per_row
        raw = memoryview(buffer).cast("B")
        if raw.nbytes < needed:
            raise BufferTooShort(needed, raw.nbytes)

        stride = bytes_per_row // _FLOAT32.itemsize
        rows = np.frombuffer(raw, dtype=_FLOAT32, count=height * stride).reshape(
            height, stride
        )
        texels = rows[:, :width].astype(np.float32)
        if fmt is PixelFormat.DISPARITY_RECIPROCAL:
            texels = _disparity_to_depth(texels)
        values = np.ascontiguousarray(texels).reshape(-1)
        L.debug(
            "decoded %dx%d depth fmt=%s stride=%d", width, height, fmt.value, stride
        )
        return DepthGrid(width=width, height=height, values=values)

    def decode_buffer(self, depth: DepthBuffer) -> DepthGrid:
        return self.decode(
            depth.data,
            depth.pixel_format,
            depth.width,
            depth.height,
            depth.bytes_per_row,
        )


__all__ = ["DepthDecoder"]
