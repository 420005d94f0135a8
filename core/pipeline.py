"""Capture-and-save pipeline shared by single-shot and continuous capture."""

from __future__ import annotations

import logging
import time

from codec import DepthDecoder, FrameEncoder
from core.contracts import ArtifactKind, CaptureOutcome, EncodedArtifact
from core.errors import DecodeError, EncodeError
from utils.path_time import epoch_ms

L = logging.getLogger("depth_capture.pipeline")

STATUS_RGB_AND_DEPTH = "Frame {n} saved (RGB + Depth)"
STATUS_RGB_ONLY = "Frame {n} saved (RGB only, no depth)"
STATUS_ERROR = "Frame {n} - Error saving"


def format_status(frame_count: int, outcome: CaptureOutcome) -> str:
    if outcome.image_saved and outcome.depth_saved:
        return STATUS_RGB_AND_DEPTH.format(n=frame_count)
    if outcome.image_saved:
        return STATUS_RGB_ONLY.format(n=frame_count)
    return STATUS_ERROR.format(n=frame_count)


class CapturePipeline:
    def __init__(
        self,
        source,
        storage,
        *,
        decoder: DepthDecoder | None = None,
        encoder: FrameEncoder | None = None,
    ):
        self.source = source
        self.storage = storage
        self.decoder = decoder or DepthDecoder()
        self.encoder = encoder or FrameEncoder()

    def run(self, frame_number: int) -> CaptureOutcome | None:
        """Capture the current frame and persist whatever encodes cleanly.

        Returns None when the source has no frame yet. Decode and encode
        failures, malformed depth metadata included, only drop the affected
        artifact; storage failures are
        reported per artifact in `CaptureOutcome.saved`.
        """
        frame = self.source.current_frame()
        if frame is None:
            return None
        t0 = time.perf_counter()
        ts_ms = epoch_ms(frame.captured_at)
        outcome = CaptureOutcome(frame_number=frame_number)
        artifacts: list[EncodedArtifact] = []

        try:
            artifacts.append(
                self.encoder.image_artifact(frame.color, frame_number, ts_ms)
            )
        except EncodeError as e:
            L.warning("[%5s] color frame not encoded: %s", frame_number, e)

        depth = frame.best_depth()
        if depth is None:
            outcome.depth_error = "no depth map in frame"
        else:
            try:
                grid = self.decoder.decode_buffer(depth)
                artifacts.append(
                    self.encoder.depth_artifact(grid, frame_number, ts_ms)
                )
            except (DecodeError, EncodeError) as e:
                outcome.depth_error = str(e)
            except ValueError as e:
                outcome.depth_error = f"malformed depth buffer: {e}"
        if outcome.depth_error:
            L.warning(
                "[%5s] depth skipped, saving color only: %s",
                frame_number,
                outcome.depth_error,
            )

        outcome.saved = self.storage.save_all(artifacts) if artifacts else []
        for saved in outcome.saved:
            if not saved.ok:
                continue
            if saved.artifact.kind is ArtifactKind.IMAGE:
                outcome.image_saved = True
            elif saved.artifact.kind is ArtifactKind.DEPTH_TABLE:
                outcome.depth_saved = True
        L.debug(
            "[%5s] pipeline artifacts=%d total=%.2fms",
            frame_number,
            len(artifacts),
            (time.perf_counter() - t0) * 1000,
        )
        return outcome


__all__ = [
    "CapturePipeline",
    "format_status",
    "STATUS_RGB_AND_DEPTH",
    "STATUS_RGB_ONLY",
    "STATUS_ERROR",
]
