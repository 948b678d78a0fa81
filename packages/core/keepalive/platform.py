"""
Platform capability used by the keep-alive strategies.

Win32 calls used:
  kernel32.SetThreadExecutionState  - request "stay awake" (continuous until reset)
  user32.GetCursorPos / SetCursorPos - read and move the mouse pointer

Other hosts get NullActivityPlatform, which never touches the OS.
"""

from __future__ import annotations

import ctypes
import logging
import sys
from abc import ABC, abstractmethod
from typing import Optional, Tuple

log = logging.getLogger(__name__)

# SetThreadExecutionState flags
ES_SYSTEM_REQUIRED = 0x00000001
ES_DISPLAY_REQUIRED = 0x00000002
ES_AWAYMODE_REQUIRED = 0x00000040  # unused; not honoured on every edition
ES_CONTINUOUS = 0x80000000

PointerPosition = Tuple[int, int]


class POINT(ctypes.Structure):
    _fields_ = [("x", ctypes.c_long), ("y", ctypes.c_long)]


class ActivityPlatform(ABC):
    """Interface to the OS calls that assert user/system activity."""

    @abstractmethod
    def assert_stay_awake(
        self,
        continuous: bool = True,
        display_required: bool = True,
        system_required: bool = True,
    ) -> bool:
        """Ask the OS to stay awake. Safe to repeat on every tick. Returns success."""
        ...

    @abstractmethod
    def reset_stay_awake(self) -> None:
        """Drop any continuous stay-awake request made earlier."""
        ...

    @abstractmethod
    def get_pointer_position(self) -> Optional[PointerPosition]:
        """Current pointer position, or None if it can't be read."""
        ...

    @abstractmethod
    def set_pointer_position(self, x: int, y: int) -> bool:
        ...


class Win32ActivityPlatform(ActivityPlatform):
    """ActivityPlatform backed by kernel32/user32 through ctypes."""

    def __init__(self) -> None:
        self._kernel32 = ctypes.windll.kernel32
        self._user32 = ctypes.windll.user32

        self._kernel32.SetThreadExecutionState.argtypes = [ctypes.c_uint32]
        self._kernel32.SetThreadExecutionState.restype = ctypes.c_uint32
        self._user32.GetCursorPos.argtypes = [ctypes.POINTER(POINT)]
        self._user32.GetCursorPos.restype = ctypes.c_int
        self._user32.SetCursorPos.argtypes = [ctypes.c_int, ctypes.c_int]
        self._user32.SetCursorPos.restype = ctypes.c_int

    def assert_stay_awake(
        self,
        continuous: bool = True,
        display_required: bool = True,
        system_required: bool = True,
    ) -> bool:
        flags = 0
        if continuous:
            flags |= ES_CONTINUOUS
        if display_required:
            flags |= ES_DISPLAY_REQUIRED
        if system_required:
            flags |= ES_SYSTEM_REQUIRED
        # Returns the previous state, 0 on failure
        previous = self._kernel32.SetThreadExecutionState(flags)
        if previous == 0:
            log.debug("SetThreadExecutionState(%s) failed", hex(flags))
            return False
        return True

    def reset_stay_awake(self) -> None:
        if self._kernel32.SetThreadExecutionState(ES_CONTINUOUS) == 0:
            log.warning("SetThreadExecutionState(ES_CONTINUOUS) failed while resetting")

    def get_pointer_position(self) -> Optional[PointerPosition]:
        point = POINT()
        if not self._user32.GetCursorPos(ctypes.byref(point)):
            return None
        return point.x, point.y

    def set_pointer_position(self, x: int, y: int) -> bool:
        return bool(self._user32.SetCursorPos(x, y))


class NullActivityPlatform(ActivityPlatform):
    """Does nothing. Used where the Win32 calls don't exist."""

    def assert_stay_awake(
        self,
        continuous: bool = True,
        display_required: bool = True,
        system_required: bool = True,
    ) -> bool:
        return True

    def reset_stay_awake(self) -> None:
        pass

    def get_pointer_position(self) -> Optional[PointerPosition]:
        return None

    def set_pointer_position(self, x: int, y: int) -> bool:
        return False


def default_platform() -> ActivityPlatform:
    """Pick the platform implementation for the current host."""
    if sys.platform == "win32":
        try:
            return Win32ActivityPlatform()
        except (AttributeError, OSError) as e:
            log.error(f"Win32 activity calls unavailable: {e}")
    log.warning("No activity platform for %s; keep-alive ticks will not affect the OS", sys.platform)
    return NullActivityPlatform()
