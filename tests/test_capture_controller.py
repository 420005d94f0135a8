import threading
import time
import unittest
from datetime import datetime, timezone

import numpy as np

from camera.latest import LatestFrameSource
from core.contracts import (
    ArtifactKind,
    CaptureMode,
    DepthBuffer,
    Frame,
    PixelFormat,
)
from core.controller import (
    STATUS_NO_FRAME,
    STATUS_SKIPPED,
    STATUS_STARTED,
    CaptureController,
)
from core.errors import StorageError
from storage.memory import MemoryStorage
from trigger import BaseTrigger, TriggerConfig


class ManualTrigger(BaseTrigger):
    def __init__(self, cfg, on_trigger):
        super().__init__(cfg, on_trigger)
        self.started = False
        self.stopped = False
        self._seq = 0

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def fire(self):
        self._seq += 1
        self.on_trigger(self._seq)


class FailingStorage(MemoryStorage):
    def __init__(self, fail_kinds):
        super().__init__()
        self.fail_kinds = set(fail_kinds)

    def save(self, kind, name, data):
        if kind in self.fail_kinds:
            raise StorageError(f"disk full: {name}")
        return super().save(kind, name, data)


class BlockingStorage(MemoryStorage):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def save(self, kind, name, data):
        self.entered.set()
        if not self.release.wait(timeout=5.0):
            raise StorageError("test storage never released")
        return super().save(kind, name, data)


class ExplodingSource(LatestFrameSource):
    def current_frame(self):
        raise RuntimeError("sensor went away")


def _depth(pixel_format=PixelFormat.DEPTH_METERS) -> DepthBuffer:
    return DepthBuffer(
        data=np.asarray([1.0, 2.0, 3.0, 4.0], dtype="<f4").tobytes(),
        pixel_format=pixel_format,
        width=2,
        height=2,
        bytes_per_row=8,
    )


def _frame(depth=None, smoothed=None, seq=1) -> Frame:
    color = np.full((4, 4, 4), 128, dtype=np.uint8)
    return Frame(
        color=color,
        depth=depth,
        smoothed_depth=smoothed,
        captured_at=datetime(2025, 12, 15, 8, 0, 0, tzinfo=timezone.utc),
        seq=seq,
    )


def _source(frame=None) -> LatestFrameSource:
    src = LatestFrameSource()
    if frame is not None:
        src.publish(frame)
    return src


class _ControllerCase(unittest.TestCase):
    def make_controller(self, source, storage):
        self.triggers = []

        def factory(cfg, on_trigger):
            trig = ManualTrigger(cfg, on_trigger)
            self.triggers.append(trig)
            return trig

        ctrl = CaptureController(source, storage, trigger_factory=factory)
        self.addCleanup(ctrl.close)
        return ctrl

    def fire_and_wait(self, ctrl, trig):
        trig.fire()
        self.assertTrue(ctrl.wait_idle(timeout=2.0))


class TestSingleShot(_ControllerCase):
    def test_saves_rgb_and_depth(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)

        outcome = ctrl.capture_single()

        self.assertTrue(outcome.image_saved and outcome.depth_saved)
        self.assertEqual(ctrl.status, "Frame 1 saved (RGB + Depth)")
        self.assertEqual(ctrl.frame_count, 1)
        self.assertIs(ctrl.mode, CaptureMode.IDLE)
        ts_ms = 1765785600000
        self.assertEqual(
            sorted(storage.list_saved()),
            [f"depth_data_0_{ts_ms}.csv", f"rgb_image_0_{ts_ms}.png"],
        )
        self.assertEqual(
            storage.load(f"depth_data_0_{ts_ms}.csv"),
            b"x,y,depth\n0,0,1.0\n1,0,2.0\n0,1,3.0\n1,1,4.0\n",
        )

    def test_frame_numbers_keep_counting(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        ctrl.capture_single()
        ctrl.capture_single()
        self.assertEqual(ctrl.frame_count, 2)
        self.assertEqual(ctrl.status, "Frame 2 saved (RGB + Depth)")
        images = storage.list_saved(ArtifactKind.IMAGE)
        self.assertTrue(images[0].startswith("rgb_image_1_"))
        self.assertTrue(images[1].startswith("rgb_image_0_"))

    def test_unsupported_format_saves_color_only(self):
        storage = MemoryStorage()
        frame = _frame(depth=_depth(pixel_format="depth_float16"))
        ctrl = self.make_controller(_source(frame), storage)

        outcome = ctrl.capture_single()

        self.assertTrue(outcome.image_saved)
        self.assertFalse(outcome.depth_saved)
        self.assertIn("unsupported", outcome.depth_error)
        self.assertIn("RGB only, no depth", ctrl.status)
        self.assertEqual(storage.list_saved(ArtifactKind.DEPTH_TABLE), [])
        self.assertEqual(len(storage.list_saved(ArtifactKind.IMAGE)), 1)

    def test_malformed_depth_metadata_saves_color_only(self):
        cases = [
            ("odd stride", DepthBuffer(b"\0" * 48, PixelFormat.DEPTH_METERS, 2, 2, 6)),
            ("empty map", DepthBuffer(b"", PixelFormat.DEPTH_METERS, 0, 0, 0)),
        ]
        for label, depth in cases:
            with self.subTest(case=label):
                storage = MemoryStorage()
                ctrl = self.make_controller(_source(_frame(depth=depth)), storage)

                outcome = ctrl.capture_single()

                self.assertTrue(outcome.image_saved)
                self.assertFalse(outcome.depth_saved)
                self.assertIn("malformed depth buffer", outcome.depth_error)
                self.assertEqual(ctrl.status, "Frame 1 saved (RGB only, no depth)")
                self.assertEqual(len(storage.list_saved(ArtifactKind.IMAGE)), 1)
                self.assertEqual(storage.list_saved(ArtifactKind.DEPTH_TABLE), [])

    def test_frame_without_depth_saves_color_only(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame()), storage)
        ctrl.capture_single()
        self.assertEqual(ctrl.status, "Frame 1 saved (RGB only, no depth)")

    def test_smoothed_depth_is_used_as_fallback(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame(smoothed=_depth())), storage)
        ctrl.capture_single()
        self.assertEqual(ctrl.status, "Frame 1 saved (RGB + Depth)")

    def test_no_frame_yet(self):
        ctrl = self.make_controller(_source(), MemoryStorage())
        self.assertIsNone(ctrl.capture_single())
        self.assertEqual(ctrl.status, STATUS_NO_FRAME)
        self.assertEqual(ctrl.frame_count, 0)

    def test_depth_storage_failure_is_partial_success(self):
        storage = FailingStorage({ArtifactKind.DEPTH_TABLE})
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        outcome = ctrl.capture_single()
        self.assertEqual(ctrl.status, "Frame 1 saved (RGB only, no depth)")
        errors = [o for o in outcome.saved if not o.ok]
        self.assertEqual(len(errors), 1)
        self.assertIs(errors[0].artifact.kind, ArtifactKind.DEPTH_TABLE)

    def test_image_storage_failure_reports_error(self):
        storage = FailingStorage({ArtifactKind.IMAGE})
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        ctrl.capture_single()
        self.assertEqual(ctrl.status, "Frame 1 - Error saving")
        self.assertEqual(ctrl.frame_count, 1)

    def test_source_exception_reports_error(self):
        ctrl = self.make_controller(ExplodingSource(), MemoryStorage())
        with self.assertLogs("depth_capture.controller", level="ERROR"):
            ctrl.capture_single()
        self.assertEqual(ctrl.status, "Frame 1 - Error saving")
        self.assertIs(ctrl.mode, CaptureMode.IDLE)


class TestContinuous(_ControllerCase):
    def test_ticks_count_frames_and_stop_summarizes(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)

        self.assertTrue(ctrl.start_continuous())
        self.assertIs(ctrl.mode, CaptureMode.CONTINUOUS)
        self.assertEqual(ctrl.status, STATUS_STARTED)
        trig = self.triggers[0]
        self.assertTrue(trig.started)
        self.assertEqual(trig.cfg.interval_ms, 100.0)

        for _ in range(3):
            self.fire_and_wait(ctrl, trig)
        self.assertEqual(ctrl.frame_count, 3)
        self.assertEqual(ctrl.status, "Frame 3 saved (RGB + Depth)")

        self.assertTrue(ctrl.stop_continuous())
        self.assertTrue(trig.stopped)
        self.assertIs(ctrl.mode, CaptureMode.IDLE)
        self.assertEqual(ctrl.status, "Stopped. Saved 3 frames to memory")
        self.assertEqual(len(storage), 6)

    def test_start_resets_frame_count(self):
        ctrl = self.make_controller(_source(_frame(depth=_depth())), MemoryStorage())
        ctrl.capture_single()
        self.assertEqual(ctrl.frame_count, 1)
        ctrl.start_continuous()
        self.assertEqual(ctrl.frame_count, 0)

    def test_start_twice_is_noop(self):
        ctrl = self.make_controller(_source(_frame()), MemoryStorage())
        self.assertTrue(ctrl.start_continuous())
        self.fire_and_wait(ctrl, self.triggers[0])
        self.assertFalse(ctrl.start_continuous())
        self.assertEqual(len(self.triggers), 1)
        self.assertEqual(ctrl.frame_count, 1)

    def test_stop_when_idle_is_noop(self):
        ctrl = self.make_controller(_source(_frame()), MemoryStorage())
        self.assertFalse(ctrl.stop_continuous())
        self.assertEqual(ctrl.status, "")

    def test_single_shot_ignored_while_continuous(self):
        ctrl = self.make_controller(_source(_frame(depth=_depth())), MemoryStorage())
        ctrl.start_continuous()
        self.fire_and_wait(ctrl, self.triggers[0])
        before = ctrl.session

        self.assertIsNone(ctrl.capture_single())

        after = ctrl.session
        self.assertEqual(after.frame_count, before.frame_count)
        self.assertEqual(after.last_status, before.last_status)
        self.assertIs(after.mode, CaptureMode.CONTINUOUS)

    def test_tick_after_stop_does_not_capture(self):
        storage = MemoryStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        ctrl.start_continuous()
        trig = self.triggers[0]
        self.fire_and_wait(ctrl, trig)
        ctrl.stop_continuous()
        status = ctrl.status

        trig.fire()
        self.assertTrue(ctrl.wait_idle(timeout=2.0))

        self.assertEqual(ctrl.frame_count, 1)
        self.assertEqual(ctrl.status, status)
        self.assertEqual(len(storage), 2)

    def test_busy_tick_is_skipped(self):
        storage = BlockingStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        ctrl.start_continuous()
        trig = self.triggers[0]

        trig.fire()
        self.assertTrue(storage.entered.wait(timeout=2.0))
        trig.fire()

        session = ctrl.session
        self.assertEqual(session.skipped_count, 1)
        self.assertEqual(session.last_status, STATUS_SKIPPED)

        storage.release.set()
        self.assertTrue(ctrl.wait_idle(timeout=2.0))
        self.assertEqual(ctrl.frame_count, 1)
        self.assertEqual(ctrl.status, "Frame 1 saved (RGB + Depth)")
        self.assertEqual(len(storage), 2)

    def test_stop_waits_for_in_flight_capture(self):
        storage = BlockingStorage()
        ctrl = self.make_controller(_source(_frame(depth=_depth())), storage)
        ctrl.start_continuous()
        self.triggers[0].fire()
        self.assertTrue(storage.entered.wait(timeout=2.0))

        stopper = threading.Thread(target=ctrl.stop_continuous)
        stopper.start()
        time.sleep(0.05)
        self.assertTrue(stopper.is_alive())
        self.assertIs(ctrl.mode, CaptureMode.CONTINUOUS)

        storage.release.set()
        stopper.join(timeout=2.0)
        self.assertFalse(stopper.is_alive())
        self.assertIs(ctrl.mode, CaptureMode.IDLE)
        self.assertEqual(ctrl.frame_count, 1)
        self.assertEqual(ctrl.status, "Stopped. Saved 1 frames to memory")

    def test_failed_tick_does_not_stop_loop(self):
        ctrl = self.make_controller(ExplodingSource(), MemoryStorage())
        ctrl.start_continuous()
        trig = self.triggers[0]
        with self.assertLogs("depth_capture.controller", level="ERROR"):
            self.fire_and_wait(ctrl, trig)
            self.fire_and_wait(ctrl, trig)
        self.assertIs(ctrl.mode, CaptureMode.CONTINUOUS)
        self.assertEqual(ctrl.frame_count, 2)
        self.assertEqual(ctrl.status, "Frame 2 - Error saving")

    def test_closed_controller_refuses_work(self):
        ctrl = self.make_controller(_source(_frame()), MemoryStorage())
        ctrl.close()
        self.assertIsNone(ctrl.capture_single())
        with self.assertRaises(RuntimeError):
            ctrl.start_continuous()


class TestPeriodicCapture(unittest.TestCase):
    def test_real_trigger_drives_captures_until_stopped(self):
        storage = MemoryStorage()
        source = _source(_frame(depth=_depth()))
        ctrl = CaptureController(
            source, storage, trigger_cfg=TriggerConfig(interval_ms=20.0)
        )
        self.addCleanup(ctrl.close)

        ctrl.start_continuous()
        deadline = time.monotonic() + 3.0
        while ctrl.frame_count < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        ctrl.stop_continuous()

        count = ctrl.frame_count
        self.assertGreaterEqual(count, 3)
        time.sleep(0.1)
        self.assertEqual(ctrl.frame_count, count)
        self.assertEqual(ctrl.status, f"Stopped. Saved {count} frames to memory")


if __name__ == "__main__":
    unittest.main()
