"""PNG / CSV serialization of captured frames, plus artifact naming."""

import logging

import cv2
import numpy as np

from core.contracts import ArtifactKind, DepthGrid, EncodedArtifact
from core.errors import DepthTableEncodeError, ImageEncodeError, InvalidDimensions

L = logging.getLogger("depth_capture.codec.encoder")

DEPTH_TABLE_HEADER = "x,y,depth"

_TO_OPENCV = {
    3: cv2.COLOR_RGB2BGR,
    4: cv2.COLOR_RGBA2BGRA,
}


def artifact_name(kind: ArtifactKind, frame_number: int, timestamp_ms: int) -> str:
    return f"{kind.prefix}_{int(frame_number)}_{int(timestamp_ms)}.{kind.ext}"


def format_depth_value(value) -> str:
    """Shortest float32 round-trip text, positional, '.' separator (e.g. '1.0')."""
    return np.format_float_positional(np.float32(value), unique=True, trim="0")


class FrameEncoder:
    def encode_image(self, pixels) -> bytes:
        """Encode an RGB(A)8 frame as PNG; RGBA keeps its alpha channel."""
        if pixels is None:
            raise InvalidDimensions("no pixel buffer")
        arr = np.asarray(pixels)
        if arr.ndim != 3 or arr.shape[2] not in _TO_OPENCV:
            raise InvalidDimensions(
                f"expected HxWx3 or HxWx4 pixels, got shape {arr.shape}"
            )
        height, width = arr.shape[:2]
        if height == 0 or width == 0:
            raise InvalidDimensions(f"zero-sized image {width}x{height}")
        if arr.dtype != np.uint8:
            raise ImageEncodeError(f"expected uint8 pixels, got {arr.dtype}")
        native = cv2.cvtColor(np.ascontiguousarray(arr), _TO_OPENCV[arr.shape[2]])
        ok, buf = cv2.imencode(".png", native)
        if not ok:
            raise ImageEncodeError("opencv_imencode_failed")
        return buf.tobytes()

    def encode_depth_table(self, grid: DepthGrid) -> bytes:
        if not grid.is_valid():
            raise DepthTableEncodeError(
                f"depth grid {grid.width}x{grid.height} has "
                f"{int(np.size(grid.values))} values"
            )
        values = np.asarray(grid.values, dtype=np.float32).reshape(-1)
        width = grid.width
        lines = [DEPTH_TABLE_HEADER]
        for idx, value in enumerate(values):
            y, x = divmod(idx, width)
            lines.append(f"{x},{y},{format_depth_value(value)}")
        lines.append("")
        return "\n".join(lines).encode("utf-8")

    def image_artifact(
        self, pixels, frame_number: int, timestamp_ms: int
    ) -> EncodedArtifact:
        return EncodedArtifact(
            kind=ArtifactKind.IMAGE,
            data=self.encode_image(pixels),
            name=artifact_name(ArtifactKind.IMAGE, frame_number, timestamp_ms),
        )

    def depth_artifact(
        self, grid: DepthGrid, frame_number: int, timestamp_ms: int
    ) -> EncodedArtifact:
        return EncodedArtifact(
            kind=ArtifactKind.DEPTH_TABLE,
            data=self.encode_depth_table(grid),
            name=artifact_name(ArtifactKind.DEPTH_TABLE, frame_number, timestamp_ms),
        )


def parse_depth_table(data: bytes | str) -> DepthGrid:
    """Read a stored depth table back into a DepthGrid."""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    lines = text.splitlines()
    if not lines or lines[0].strip() != DEPTH_TABLE_HEADER:
        raise ValueError("depth table is missing the 'x,y,depth' header")
    cells: list[tuple[int, int, float]] = []
    for lineno, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        parts = line.split(",")
        if len(parts) != 3:
            raise ValueError(f"line {lineno}: expected 3 fields, got {len(parts)}")
        cells.append((int(parts[0]), int(parts[1]), float(parts[2])))
    if not cells:
        raise ValueError("depth table has no cells")
    width = max(c[0] for c in cells) + 1
    height = max(c[1] for c in cells) + 1
    if len(cells) != width * height:
        raise ValueError(
            f"depth table has {len(cells)} cells, expected {width * height}"
        )
    values = np.zeros(width * height, dtype=np.float32)
    for x, y, depth in cells:
        values[y * width + x] = depth
    return DepthGrid(width=width, height=height, values=values)


__all__ = [
    "DEPTH_TABLE_HEADER",
    "FrameEncoder",
    "artifact_name",
    "format_depth_value",
    "parse_depth_table",
]
