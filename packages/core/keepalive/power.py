from __future__ import annotations

import logging
from typing import Optional

import psutil

log = logging.getLogger(__name__)


def power_source_summary() -> Optional[str]:
    """
    One-line power source description, or None when the machine has no
    battery (or psutil can't tell).
    """
    try:
        battery = psutil.sensors_battery()
    except Exception as e:
        log.debug(f"Battery query failed: {e}")
        return None

    if battery is None:
        return None
    if battery.power_plugged:
        return f"AC power (battery {battery.percent:.0f}%)"
    return f"battery {battery.percent:.0f}%"
