from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Literal

ServiceStatus = Literal["STOPPED", "RUNNING"]

# Longest wait threading primitives accept
MAX_INTERVAL_SECONDS = int(threading.TIMEOUT_MAX)


class KeepAliveMethod(str, Enum):
    """Approach used to keep the machine awake on every active tick."""

    EXECUTION_STATE = "ExecutionState"  # thread execution state flags only
    MOUSE_JIGGLE = "MouseJiggle"  # simulated pointer movement
    HYBRID = "Hybrid"  # jiggle, then execution state

    @classmethod
    def parse(cls, value: str) -> "KeepAliveMethod":
        """Case-insensitive lookup by name. Raises ValueError if unknown."""
        wanted = value.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(f"Unknown keep-alive method: {value!r}")


@dataclass(frozen=True)
class KeepAliveState:
    """Point-in-time snapshot of the service state."""
    running: bool = False
    paused: bool = False
    method: KeepAliveMethod = KeepAliveMethod.HYBRID
    interval_seconds: int = 30

    @property
    def status(self) -> ServiceStatus:
        return "RUNNING" if self.running else "STOPPED"
