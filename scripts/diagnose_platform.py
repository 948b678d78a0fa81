"""
Manual check of the keep-alive platform calls.
Run this on the target machine to confirm the OS calls work.

Expected behavior:
- Prints the current pointer position
- Pointer sweeps right and back once, ending where it started
- Execution state assert and reset both succeed
"""

import sys
import os
import logging

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from packages.core.keepalive.platform import NullActivityPlatform, default_platform
from packages.core.keepalive.strategies import MouseJiggleStrategy

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)

def main():
    print("=" * 60)
    print("Keep-Alive Platform Check")
    print("=" * 60)
    print()

    platform = default_platform()
    print(f"Platform: {type(platform).__name__}")
    if isinstance(platform, NullActivityPlatform):
        print("❌ No OS activity calls on this host; nothing to check")
        return 1

    before = platform.get_pointer_position()
    if before is None:
        print("❌ Could not read pointer position")
        return 1
    print(f"✓ Pointer at {before}")

    warnings = MouseJiggleStrategy(platform).apply()
    after = platform.get_pointer_position()
    for warning in warnings:
        print(f"❌ {warning}")
    print(f"{'✓' if after == before else '❌'} Pointer back at {after}")

    if platform.assert_stay_awake():
        print("✓ Stay-awake request accepted")
    else:
        print("❌ Stay-awake request failed")
    platform.reset_stay_awake()
    print("✓ Stay-awake request reset")

    print("=" * 60)
    return 0

if __name__ == "__main__":
    sys.exit(main())
