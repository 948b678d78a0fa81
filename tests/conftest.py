"""
Shared fixtures: a recording fake platform and a notification recorder.
"""

import threading
import time
from typing import List, Optional, Tuple

import pytest

from packages.core.keepalive.notifications import StatusNotification
from packages.core.keepalive.platform import ActivityPlatform
from packages.core.keepalive.service import KeepAliveService
from packages.core.keepalive.strategies import build_strategy


class FakePlatform(ActivityPlatform):
    """Records every call instead of touching the OS."""

    def __init__(
        self,
        position: Optional[Tuple[int, int]] = (100, 200),
        stay_awake_ok: bool = True,
        move_ok: bool = True,
    ) -> None:
        self.position = position
        self.stay_awake_ok = stay_awake_ok
        self.move_ok = move_ok
        self.calls: List[tuple] = []
        self.moves: List[Tuple[int, int]] = []
        # (call, thread name) for the stay-awake calls
        self.threads: List[Tuple[str, str]] = []

    def assert_stay_awake(self, continuous=True, display_required=True, system_required=True) -> bool:
        self.calls.append(("assert", continuous, display_required, system_required))
        self.threads.append(("assert", threading.current_thread().name))
        return self.stay_awake_ok

    def reset_stay_awake(self) -> None:
        self.calls.append(("reset",))
        self.threads.append(("reset", threading.current_thread().name))

    def get_pointer_position(self):
        self.calls.append(("get_pointer",))
        return self.position

    def set_pointer_position(self, x: int, y: int) -> bool:
        self.moves.append((x, y))
        return self.move_ok

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def count_on(self, name: str, thread_name: str) -> int:
        return self.threads.count((name, thread_name))

    def loop_calls(self) -> List[str]:
        """Stay-awake calls made by the keep-alive loop thread, in order."""
        return [call for call, thread in self.threads if thread == "KeepAliveLoop"]


def wait_until(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class Recorder:
    """Collects notifications and lets tests wait for one to show up."""

    def __init__(self) -> None:
        self.notifications: List[StatusNotification] = []
        self._cond = threading.Condition()

    def __call__(self, notification: StatusNotification) -> None:
        with self._cond:
            self.notifications.append(notification)
            self._cond.notify_all()

    @property
    def messages(self) -> List[str]:
        with self._cond:
            return [n.message for n in self.notifications]

    def matching(self, text: str) -> List[str]:
        return [m for m in self.messages if text in m]

    def wait_for(self, text: str, timeout: float = 3.0, count: int = 1) -> bool:
        deadline = time.monotonic() + timeout
        with self._cond:
            while sum(1 for n in self.notifications if text in n.message) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True


def no_sleep_strategy(method, platform):
    return build_strategy(method, platform, sleep=lambda _seconds: None)


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def service(platform, recorder):
    svc = KeepAliveService(platform=platform, strategy_factory=no_sleep_strategy)
    svc.subscribe(recorder)
    yield svc
    if svc.is_running:
        svc.stop()
    svc.join(timeout=2.0)


class BlockingStream:
    """readline() blocks until release() is called, then reports EOF."""

    def __init__(self) -> None:
        self._released = threading.Event()
        self.closed = False

    def readline(self) -> str:
        self._released.wait()
        return ""

    def release(self) -> None:
        self._released.set()
