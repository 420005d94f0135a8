from .depth import DepthDecoder
from .encoder import (
    DEPTH_TABLE_HEADER,
    FrameEncoder,
    artifact_name,
    format_depth_value,
    parse_depth_table,
)

__all__ = [
    "DepthDecoder",
    "FrameEncoder",
    "DEPTH_TABLE_HEADER",
    "artifact_name",
    "format_depth_value",
    "parse_depth_table",
]
