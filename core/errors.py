"""Error taxonomy for the decode / encode / persist stages."""

from __future__ import annotations


class CaptureError(Exception):
    pass


class DecodeError(CaptureError):
    pass


class UnsupportedFormat(DecodeError):
    def __init__(self, pixel_format: object):
        super().__init__(f"unsupported depth pixel format: {pixel_format!r}")
        self.pixel_format = pixel_format


class BufferTooShort(DecodeError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"depth buffer too short: expected >= {expected} bytes, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class EncodeError(CaptureError):
    pass


class ImageEncodeError(EncodeError):
    pass


class InvalidDimensions(ImageEncodeError):
    pass


class DepthTableEncodeError(EncodeError):
    pass


class StorageError(CaptureError):
    pass


__all__ = [
    "CaptureError",
    "DecodeError",
    "UnsupportedFormat",
    "BufferTooShort",
    "EncodeError",
    "ImageEncodeError",
    "InvalidDimensions",
    "DepthTableEncodeError",
    "StorageError",
]
