"""
Keep-alive service: a background thread that asserts activity once per
interval, with pause/resume/stop control and status notifications.

Loop states: ACTIVE -> PAUSED -> ACTIVE ... -> TERMINATED
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from .notifications import StatusBroadcaster, StatusHandler
from .platform import ActivityPlatform, default_platform
from .strategies import KeepAliveStrategy, build_strategy
from .types import MAX_INTERVAL_SECONDS, KeepAliveMethod, KeepAliveState

log = logging.getLogger(__name__)

StrategyFactory = Callable[[KeepAliveMethod, ActivityPlatform], KeepAliveStrategy]


def _now_hms() -> str:
    return datetime.now().strftime("%H:%M:%S")


class KeepAliveService:
    """
    Owns the keep-alive loop and its state.

    State transitions (start/pause/resume/stop) are serialized by one lock.
    The state itself is an immutable snapshot swapped under that lock, so
    the read-only properties never see a half-applied transition.
    """

    def __init__(
        self,
        platform: Optional[ActivityPlatform] = None,
        broadcaster: Optional[StatusBroadcaster] = None,
        strategy_factory: StrategyFactory = build_strategy,
    ) -> None:
        self._platform = platform or default_platform()
        self._broadcaster = broadcaster or StatusBroadcaster()
        self._strategy_factory = strategy_factory
        self._state = KeepAliveState()
        self._lock = threading.Lock()

        self._thread: Optional[threading.Thread] = None
        self._stop_evt: Optional[threading.Event] = None
        self._wake_evt: Optional[threading.Event] = None

    # -- notifications -------------------------------------------------

    @property
    def broadcaster(self) -> StatusBroadcaster:
        return self._broadcaster

    def subscribe(self, handler: StatusHandler) -> None:
        self._broadcaster.subscribe(handler)

    def unsubscribe(self, handler: StatusHandler) -> None:
        self._broadcaster.unsubscribe(handler)

    def _emit(self, message: str) -> None:
        self._broadcaster.publish(message)

    def _emit_warning(self, message: str) -> None:
        self._broadcaster.publish(message, level="WARNING")

    def _emit_error(self, message: str) -> None:
        self._broadcaster.publish(message, level="ERROR")

    # -- state accessors -----------------------------------------------

    def get_state(self) -> KeepAliveState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def is_paused(self) -> bool:
        return self._state.paused

    @property
    def current_method(self) -> KeepAliveMethod:
        return self._state.method

    @property
    def current_interval(self) -> int:
        return self._state.interval_seconds

    # -- control -------------------------------------------------------

    def start(self, method: KeepAliveMethod = KeepAliveMethod.HYBRID, interval_seconds: int = 30) -> bool:
        """Start the loop. Returns False (after notifying) if already running."""
        if not 0 < interval_seconds <= MAX_INTERVAL_SECONDS:
            raise ValueError(
                f"interval_seconds must be between 1 and {MAX_INTERVAL_SECONDS}, got {interval_seconds}"
            )

        with self._lock:
            if self._state.running:
                already_running = True
            else:
                already_running = False
                strategy = self._strategy_factory(method, self._platform)
                stop_evt = threading.Event()
                wake_evt = threading.Event()
                thread = threading.Thread(
                    target=self._run,
                    args=(stop_evt, wake_evt, strategy, method, interval_seconds),
                    name="KeepAliveLoop",
                    daemon=True,
                )
                self._stop_evt = stop_evt
                self._wake_evt = wake_evt
                self._thread = thread
                self._state = KeepAliveState(
                    running=True,
                    paused=False,
                    method=method,
                    interval_seconds=interval_seconds,
                )

        if already_running:
            self._emit("Keep-alive service is already running.")
            return False

        self._emit(
            f"Keep-alive service started using {method.value} method (interval: {interval_seconds}s)"
        )
        thread.start()
        return True

    def pause(self) -> bool:
        with self._lock:
            if not self._state.running:
                message = "Keep-alive service is not running."
                changed = False
            elif self._state.paused:
                message = "Keep-alive service is already paused."
                changed = False
            else:
                self._state = replace(self._state, paused=True)
                # Let the machine idle right away instead of at the next tick.
                # The request is per thread, so the loop also drops its own.
                self._platform.reset_stay_awake()
                if self._wake_evt is not None:
                    self._wake_evt.set()
                message = "Keep-alive service PAUSED. System can now go idle/sleep."
                changed = True

        self._emit(message)
        return changed

    def resume(self) -> bool:
        """Clear the pause. Activity is asserted again on the next tick, not here."""
        with self._lock:
            if not self._state.running:
                message = "Keep-alive service is not running."
                changed = False
            elif not self._state.paused:
                message = "Keep-alive service is already active."
                changed = False
            else:
                self._state = replace(self._state, paused=False)
                message = "Keep-alive service RESUMED. System will stay awake."
                changed = True

        self._emit(message)
        return changed

    def toggle(self) -> bool:
        if self._state.paused:
            return self.resume()
        return self.pause()

    def stop(self) -> bool:
        """
        Request loop cancellation and release the stay-awake request.

        Returns once cancellation has been signalled; use join() to wait for
        the loop thread itself.
        """
        with self._lock:
            if not self._state.running:
                stopped = False
            else:
                if self._stop_evt is not None:
                    self._stop_evt.set()
                if self._wake_evt is not None:
                    self._wake_evt.set()
                self._platform.reset_stay_awake()
                # Method and interval stay visible for status output
                self._state = replace(self._state, running=False, paused=False)
                stopped = True

        if not stopped:
            self._emit("Keep-alive service is not running.")
            return False

        self._emit("Keep-alive service stopped.")
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the most recent loop thread to exit. Returns True if it has."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # -- loop ----------------------------------------------------------
    # Stay-awake requests belong to the thread that made them, so only the
    # loop thread can drop the one its ticks asserted.

    def _release_stay_awake(self) -> None:
        try:
            self._platform.reset_stay_awake()
        except Exception:
            log.exception("Failed to reset stay-awake state")

    def _tick(self, strategy: KeepAliveStrategy, method: KeepAliveMethod, holding: bool) -> bool:
        """Run one tick. Returns whether this thread now holds a stay-awake request."""
        if self._state.paused:
            if holding:
                self._release_stay_awake()
            self._emit(f"[{_now_hms()}] Keep-alive PAUSED - system can idle")
            return False

        holding = True
        for warning in strategy.apply():
            self._emit_warning(warning)
        self._emit(f"[{_now_hms()}] System kept awake using {method.value}")
        return holding

    def _wait_for_next_tick(
        self,
        stop_evt: threading.Event,
        wake_evt: threading.Event,
        interval_seconds: int,
        holding: bool,
    ) -> bool:
        """Sleep out the interval. A pause wakes the loop early to release its request."""
        deadline = time.monotonic() + interval_seconds
        while not stop_evt.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if wake_evt.wait(remaining):
                wake_evt.clear()
                if holding and self._state.paused and not stop_evt.is_set():
                    self._release_stay_awake()
                    holding = False
        return holding

    def _run(
        self,
        stop_evt: threading.Event,
        wake_evt: threading.Event,
        strategy: KeepAliveStrategy,
        method: KeepAliveMethod,
        interval_seconds: int,
    ) -> None:
        """Tick until stop_evt is set. One failed tick never ends the loop."""
        holding = False
        try:
            while not stop_evt.is_set():
                try:
                    holding = self._tick(strategy, method, holding)
                except Exception as e:
                    log.exception("Keep-alive loop error")
                    self._emit_error(f"Error in keep-alive loop: {e}")
                    # It may have asserted before failing
                    holding = True

                # Interval counts from the end of this tick's work
                holding = self._wait_for_next_tick(stop_evt, wake_evt, interval_seconds, holding)
        finally:
            # Also undoes an assert from a tick that was in flight during stop()
            self._release_stay_awake()
            self._emit("Keep-alive loop terminated.")
