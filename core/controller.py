"""CaptureController: single-shot vs. continuous capture state machine."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable

from core.contracts import CaptureMode, CaptureOutcome, CaptureSession
from core.pipeline import CapturePipeline, format_status
from trigger import BaseTrigger, PeriodicTrigger, TriggerConfig

L = logging.getLogger("depth_capture.controller")

STATUS_STARTED = "Continuous capture started"
STATUS_SKIPPED = "Frame skipped (previous save still in progress)"
STATUS_NO_FRAME = "No frame available"

TriggerFactory = Callable[[TriggerConfig, Callable[[int], None]], BaseTrigger]


class CaptureController:
    """Coordinates capture triggering, frame counting, and status reporting.

    Continuous mode uses skip-if-busy backpressure: a tick that arrives while
    the previous capture is still saving is dropped and counted in
    `skipped_count`. `stop_continuous()` waits for an in-flight capture, and
    no capture starts after it returns.
    """

    def __init__(
        self,
        source,
        storage,
        *,
        decoder=None,
        encoder=None,
        trigger_cfg: TriggerConfig | None = None,
        trigger_factory: TriggerFactory | None = None,
    ):
        self.storage = storage
        self._pipeline = CapturePipeline(
            source, storage, decoder=decoder, encoder=encoder
        )
        self._trigger_cfg = trigger_cfg or TriggerConfig()
        self._trigger_factory = trigger_factory or PeriodicTrigger
        self._session = CaptureSession()
        self._state_lock = threading.Lock()
        self._control_lock = threading.Lock()
        self._busy = threading.Lock()
        self._accepting_ticks = False
        self._trigger: BaseTrigger | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._closed = False

    # ---- Observable state ----

    @property
    def session(self) -> CaptureSession:
        with self._state_lock:
            return replace(self._session)

    @property
    def mode(self) -> CaptureMode:
        with self._state_lock:
            return self._session.mode

    @property
    def frame_count(self) -> int:
        with self._state_lock:
            return self._session.frame_count

    @property
    def status(self) -> str:
        with self._state_lock:
            return self._session.last_status

    # ---- Commands ----

    def start_continuous(self) -> bool:
        with self._control_lock, self._state_lock:
            if self._closed:
                raise RuntimeError("CaptureController is closed")
            if self._session.mode is not CaptureMode.IDLE:
                return False
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="capture"
                )
            self._session.mode = CaptureMode.CONTINUOUS
            self._session.frame_count = 0
            self._session.skipped_count = 0
            self._session.last_status = STATUS_STARTED
            self._accepting_ticks = True
            self._trigger = self._trigger_factory(self._trigger_cfg, self._on_tick)
            self._trigger.start()
        L.info(
            "Continuous capture started interval=%.1fms", self._trigger_cfg.interval_ms
        )
        return True

    def stop_continuous(self) -> bool:
        with self._control_lock:
            with self._state_lock:
                if self._session.mode is not CaptureMode.CONTINUOUS:
                    return False
                self._accepting_ticks = False
                trigger, self._trigger = self._trigger, None
            if trigger is not None:
                trigger.stop()
            # Let an in-flight capture finish before leaving CONTINUOUS.
            with self._busy:
                pass
            with self._state_lock:
                self._session.mode = CaptureMode.IDLE
                count = self._session.frame_count
                skipped = self._session.skipped_count
                where = self.storage.describe()
                status = f"Stopped. Saved {count} frames"
                if where:
                    status += f" to {where}"
                self._session.last_status = status
        L.info("Continuous capture stopped frames=%d skipped=%d", count, skipped)
        return True

    def capture_single(self) -> CaptureOutcome | None:
        with self._state_lock:
            if self._closed or self._session.mode is not CaptureMode.IDLE:
                return None
            self._session.mode = CaptureMode.SINGLE_SHOT
            frame_number = self._session.frame_count
        try:
            with self._busy:
                return self._run_pipeline(frame_number)
        finally:
            with self._state_lock:
                self._session.mode = CaptureMode.IDLE

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no capture is in flight."""
        acquired = self._busy.acquire(timeout=-1 if timeout is None else timeout)
        if acquired:
            self._busy.release()
        return acquired

    def close(self):
        self.stop_continuous()
        with self._state_lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ---- Internals ----

    def _on_tick(self, tick_seq: int):
        with self._state_lock:
            if not self._accepting_ticks:
                return
            if not self._busy.acquire(blocking=False):
                self._session.skipped_count += 1
                self._session.last_status = STATUS_SKIPPED
                L.warning(
                    "tick=%d skipped: previous save still in progress (skipped=%d)",
                    tick_seq,
                    self._session.skipped_count,
                )
                return
            frame_number = self._session.frame_count
            executor = self._executor
        try:
            executor.submit(self._run_tick, frame_number)
        except Exception:
            self._busy.release()
            raise

    def _run_tick(self, frame_number: int):
        try:
            self._run_pipeline(frame_number)
        finally:
            self._busy.release()

    def _run_pipeline(self, frame_number: int) -> CaptureOutcome | None:
        try:
            outcome = self._pipeline.run(frame_number)
        except Exception:
            L.exception("[%5s] capture pipeline failed", frame_number)
            outcome = CaptureOutcome(frame_number=frame_number)
        with self._state_lock:
            if outcome is None:
                self._session.last_status = STATUS_NO_FRAME
                L.debug("[%5s] no frame available yet", frame_number)
                return None
            self._session.frame_count += 1
            outcome.status = format_status(self._session.frame_count, outcome)
            self._session.last_status = outcome.status
        log_fn = L.info if outcome.image_saved else L.warning
        log_fn(
            "[%5s] image=%s depth=%s status=%s",
            frame_number,
            outcome.image_saved,
            outcome.depth_saved,
            outcome.status,
        )
        return outcome


__all__ = [
    "CaptureController",
    "STATUS_STARTED",
    "STATUS_SKIPPED",
    "STATUS_NO_FRAME",
]
