# -- coding: utf-8 --

import logging
import threading
import time

from trigger.base import BaseTrigger, TriggerConfig, register_trigger

L = logging.getLogger("depth_capture.trigger.periodic")


@register_trigger("periodic")
class PeriodicTrigger(BaseTrigger):
    """Fixed-rate tick thread.

    Ticks are scheduled against `time.monotonic()`, so a slow callback does not
    accumulate drift; ticks that fall entirely behind are dropped rather than
    fired back-to-back. Exceptions from the callback are logged and the
    thread keeps ticking.
    """

    def __init__(self, cfg: TriggerConfig, on_trigger):
        super().__init__(cfg, on_trigger)
        if cfg.interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {cfg.interval_ms}")
        self._period_s = cfg.interval_ms / 1000.0
        self._stop_evt = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()
        self._tick_seq = 0

    def start(self):
        with self._state_lock:
            if self._thread is not None:
                raise RuntimeError(
                    "PeriodicTrigger is single-use; start() may only be called once"
                )
            self._thread = threading.Thread(
                target=self._run, name="periodic_trigger", daemon=True
            )
            self._thread.start()
        L.debug("periodic trigger started interval=%.1fms", self.cfg.interval_ms)

    def stop(self):
        self._stop_evt.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=self.cfg.join_timeout_s)
        if thread.is_alive():
            L.warning("periodic trigger thread did not exit cleanly")

    @property
    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self):
        next_ts = time.monotonic() + self._period_s
        while not self._stop_evt.wait(max(0.0, next_ts - time.monotonic())):
            self._tick_seq += 1
            try:
                self.on_trigger(self._tick_seq)
            except Exception:
                L.exception("[%5s] tick callback failed", self._tick_seq)
            next_ts += self._period_s
            now = time.monotonic()
            if next_ts < now:
                missed = int((now - next_ts) / self._period_s) + 1
                L.debug("periodic trigger behind schedule, dropping %d ticks", missed)
                next_ts += missed * self._period_s


__all__ = ["PeriodicTrigger"]
