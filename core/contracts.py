"""Data contracts shared by frame sources, codecs, storage, and the controller."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import numpy as np

from core.errors import StorageError


class PixelFormat(str, Enum):
    DEPTH_METERS = "depth_float32"
    DISPARITY_RECIPROCAL = "disparity_float32"


class CaptureMode(str, Enum):
    IDLE = "idle"
    SINGLE_SHOT = "single_shot"
    CONTINUOUS = "continuous"


class ArtifactKind(str, Enum):
    IMAGE = "image"
    DEPTH_TABLE = "depth_table"

    @property
    def prefix(self) -> str:
        return _KIND_PREFIX[self]

    @property
    def ext(self) -> str:
        return _KIND_EXT[self]


_KIND_PREFIX = {
    ArtifactKind.IMAGE: "rgb_image",
    ArtifactKind.DEPTH_TABLE: "depth_data",
}
_KIND_EXT = {
    ArtifactKind.IMAGE: "png",
    ArtifactKind.DEPTH_TABLE: "csv",
}


@dataclass(frozen=True, slots=True)
class DepthBuffer:
    data: bytes
    pixel_format: Any  # PixelFormat, or whatever raw tag the sensor reported
    width: int
    height: int
    bytes_per_row: int


@dataclass(frozen=True, slots=True)
class Frame:
    color: np.ndarray  # H x W x 4 RGBA8 (H x W x 3 RGB8 accepted)
    depth: DepthBuffer | None = None
    smoothed_depth: DepthBuffer | None = None
    captured_at: datetime | None = None
    seq: int = 0

    def best_depth(self) -> DepthBuffer | None:
        return self.depth if self.depth is not None else self.smoothed_depth


@dataclass(slots=True)
class DepthGrid:
    width: int
    height: int
    values: np.ndarray  # float32, row-major, len == width * height

    def is_valid(self) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and int(np.size(self.values)) == self.width * self.height
        )

    def at(self, x: int, y: int) -> float:
        return float(self.values[y * self.width + x])


@dataclass(slots=True)
class EncodedArtifact:
    kind: ArtifactKind
    data: bytes
    name: str


@dataclass(slots=True)
class SaveOutcome:
    artifact: EncodedArtifact
    error: StorageError | None = None
    location: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class CaptureSession:
    mode: CaptureMode = CaptureMode.IDLE
    frame_count: int = 0
    last_status: str = ""
    skipped_count: int = 0


@dataclass(slots=True)
class CaptureOutcome:
    frame_number: int = 0
    image_saved: bool = False
    depth_saved: bool = False
    depth_error: str | None = None
    status: str = ""
    saved: list[SaveOutcome] = field(default_factory=list)


__all__ = [
    "PixelFormat",
    "CaptureMode",
    "ArtifactKind",
    "DepthBuffer",
    "Frame",
    "DepthGrid",
    "EncodedArtifact",
    "SaveOutcome",
    "CaptureSession",
    "CaptureOutcome",
]
