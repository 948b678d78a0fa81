"""
Keep-alive strategies, one per KeepAliveMethod.

Each ``apply()`` performs one tick's worth of activity assertion and returns
the warnings it ran into. Platform failures are never raised from here; they
come back as warning text so the caller can report them and carry on.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Sequence

from .platform import ActivityPlatform
from .types import KeepAliveMethod

log = logging.getLogger(__name__)

MOUSE_MOVE_DISTANCE = 500
MOUSE_MOVE_STEP = 30
MOUSE_STEP_DELAY_SECONDS = 0.001


class KeepAliveStrategy(ABC):
    @abstractmethod
    def apply(self) -> List[str]:
        """Assert activity once. Returns warning messages (empty on success)."""
        ...


class ExecutionStateStrategy(KeepAliveStrategy):
    """Continuous 'system + display required' execution state."""

    def __init__(self, platform: ActivityPlatform) -> None:
        self._platform = platform

    def apply(self) -> List[str]:
        ok = self._platform.assert_stay_awake(
            continuous=True,
            display_required=True,
            system_required=True,
        )
        if not ok:
            return ["Warning: Failed to set thread execution state."]
        return []


class MouseJiggleStrategy(KeepAliveStrategy):
    """
    Sweeps the pointer right by MOUSE_MOVE_DISTANCE in MOUSE_MOVE_STEP
    increments, sweeps it back, then puts it where it started.
    """

    def __init__(
        self,
        platform: ActivityPlatform,
        distance: int = MOUSE_MOVE_DISTANCE,
        step: int = MOUSE_MOVE_STEP,
        step_delay: float = MOUSE_STEP_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._platform = platform
        self._distance = distance
        self._step = step
        self._step_delay = step_delay
        self._sleep = sleep

    def apply(self) -> List[str]:
        position = self._platform.get_pointer_position()
        if position is None:
            return ["Warning: Could not read pointer position."]

        start_x, y = position
        failed_moves = 0

        for x in range(start_x, start_x + self._distance, self._step):
            if not self._platform.set_pointer_position(x, y):
                failed_moves += 1
            self._sleep(self._step_delay)

        for x in range(start_x + self._distance, start_x, -self._step):
            if not self._platform.set_pointer_position(x, y):
                failed_moves += 1
            self._sleep(self._step_delay)

        if not self._platform.set_pointer_position(start_x, y):
            failed_moves += 1

        if failed_moves:
            log.debug("Pointer move failed %d time(s) during jiggle", failed_moves)
            return ["Warning: Failed to move pointer."]
        return []


class CompositeStrategy(KeepAliveStrategy):
    """Runs each strategy in order and collects all warnings."""

    def __init__(self, strategies: Sequence[KeepAliveStrategy]) -> None:
        self._strategies = list(strategies)

    def apply(self) -> List[str]:
        warnings: List[str] = []
        for strategy in self._strategies:
            warnings.extend(strategy.apply())
        return warnings


def build_strategy(
    method: KeepAliveMethod,
    platform: ActivityPlatform,
    sleep: Callable[[float], None] = time.sleep,
) -> KeepAliveStrategy:
    if method == KeepAliveMethod.EXECUTION_STATE:
        return ExecutionStateStrategy(platform)
    if method == KeepAliveMethod.MOUSE_JIGGLE:
        return MouseJiggleStrategy(platform, sleep=sleep)
    if method == KeepAliveMethod.HYBRID:
        return CompositeStrategy([
            MouseJiggleStrategy(platform, sleep=sleep),
            ExecutionStateStrategy(platform),
        ])
    raise ValueError(f"Unsupported keep-alive method: {method!r}")
