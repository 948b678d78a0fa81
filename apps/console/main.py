import logging
import os
import signal
import sys
from typing import Optional, Sequence

from packages.shared.config import parse_args
from packages.shared.paths import ensure_app_dirs
from packages.core.logging_ import setup_logging
from packages.core.keepalive.platform import default_platform
from packages.core.keepalive.service import KeepAliveService
from .console import CommandConsole

log = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ensure_app_dirs()
    setup_logging()

    args = list(sys.argv[1:] if argv is None else argv)
    cfg, problems = parse_args(args)

    print("=== Anti-Idle Utility ===")
    print()
    for problem in problems:
        print(problem)

    service = KeepAliveService(platform=default_platform())
    console = CommandConsole(service)

    # Ctrl+C: stop both loops and leave right away, skipping normal unwinding
    def signal_handler(sig, frame):
        print("\nShutting down gracefully...")
        console.stop()
        service.stop()
        logging.shutdown()
        sys.stdout.flush()
        os._exit(0)

    if hasattr(signal, 'SIGINT'):
        signal.signal(signal.SIGINT, signal_handler)

    # Console subscribes first so the "started" notification is shown
    console.start()
    service.start(cfg.method, cfg.interval_seconds)
    log.info("Started with method=%s interval=%ss", cfg.method.value, cfg.interval_seconds)

    # Short timeouts keep the main thread responsive to Ctrl+C on Windows
    while not console.wait_for_exit(timeout=0.5):
        pass

    service.stop()
    service.join(timeout=2.0)
    console.stop()
    print("Program terminated.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
