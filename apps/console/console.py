"""
Interactive command console for the keep-alive service.

Runs its own input thread next to the service loop. Service notifications
arrive on the service thread and are drawn under the display lock, so a
notification never lands in the middle of the prompt the user is typing at.
"""

from __future__ import annotations

import logging
import shutil
import sys
import threading
from typing import Callable, Dict, Optional, TextIO

from packages.core.keepalive.notifications import StatusNotification
from packages.core.keepalive.power import power_source_summary
from packages.core.keepalive.service import KeepAliveService

from .line_reader import CancellableLineReader, ReadCancelled

log = logging.getLogger(__name__)

PROMPT = "> "

HELP_TEXT = """\
Available commands:
  p, pause  - Pause keep-alive (allows system to sleep)
  r, resume - Resume keep-alive
  t, toggle - Toggle pause/resume
  s, status - Show current status
  h, help   - Show this help
  q, quit   - Exit program

Command line usage:
  anti-idle [method] [interval]

Keep-alive methods:
  ExecutionState - Uses the thread execution state API
  MouseJiggle    - Simulates minimal mouse movement
  Hybrid         - Combines both methods (default)

Examples:
  anti-idle
  anti-idle ExecutionState 60
  anti-idle MouseJiggle 30
  anti-idle Hybrid 45
"""


class CommandConsole:
    def __init__(
        self,
        service: KeepAliveService,
        reader: Optional[CancellableLineReader] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self._service = service
        self._reader = reader or CancellableLineReader()
        self._out = out if out is not None else sys.stdout

        self._exit_evt = threading.Event()
        self._display_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

        self._commands: Dict[str, Callable[[], None]] = {}
        self._register(("p", "pause"), self._service.pause)
        self._register(("r", "resume"), self._service.resume)
        self._register(("t", "toggle"), self._service.toggle)
        self._register(("s", "status"), self.show_status)
        self._register(("h", "help"), self.show_help)
        self._register(("q", "quit", "exit"), self.request_exit)

    def _register(self, aliases: tuple, handler: Callable[[], None]) -> None:
        for alias in aliases:
            self._commands[alias] = handler

    # -- lifecycle -----------------------------------------------------

    def start(self) -> None:
        self._service.subscribe(self._on_status)
        self.show_help()
        self._thread = threading.Thread(target=self._input_loop, name="ConsoleInput", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the input loop to finish and stop listening to the service. Idempotent."""
        self._exit_evt.set()
        if self._stopped:
            return
        self._stopped = True
        self._reader.cancel()
        self._service.unsubscribe(self._on_status)

    def wait_for_exit(self, timeout: Optional[float] = None) -> bool:
        """Block until the input loop has ended. Returns False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def should_exit(self) -> bool:
        return self._exit_evt.is_set()

    def request_exit(self) -> None:
        self._exit_evt.set()

    # -- display -------------------------------------------------------

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def _clear_line(self) -> None:
        columns = shutil.get_terminal_size(fallback=(80, 24)).columns
        self._write("\r" + " " * max(columns - 1, 80) + "\r")

    def _on_status(self, notification: StatusNotification) -> None:
        with self._display_lock:
            self._clear_line()
            self._write(notification.message + "\n")
            if not self._exit_evt.is_set() and self._service.is_running:
                self._write(PROMPT)

    def _print(self, text: str) -> None:
        with self._display_lock:
            self._write(text)

    def show_help(self) -> None:
        self._print(HELP_TEXT + "\n")

    def show_status(self) -> None:
        state = self._service.get_state()
        if state.running:
            status = "RUNNING (PAUSED)" if state.paused else "RUNNING (ACTIVE)"
        else:
            status = "STOPPED"

        lines = [
            f"Status: {status}",
            f"Method: {state.method.value}",
            f"Interval: {state.interval_seconds} seconds",
        ]
        if state.running and state.paused:
            lines.append("System can currently go idle/sleep")
        elif state.running:
            lines.append("System is being kept awake")

        power = power_source_summary()
        if power:
            lines.append(f"Power: {power}")

        self._print("\n".join(lines) + "\n\n")

    # -- input ---------------------------------------------------------

    def process_command(self, line: str) -> bool:
        """Run one command line. Returns False if it wasn't recognized."""
        command = line.strip().lower()
        if not command:
            return True

        handler = self._commands.get(command)
        if handler is None:
            self._print(f"Unknown command '{line.strip()}'. Type 'h' for help.\n")
            return False

        handler()
        return True

    def _input_loop(self) -> None:
        self._print(PROMPT)

        while not self._exit_evt.is_set():
            try:
                line = self._reader.read_line()
            except ReadCancelled:
                break
            except EOFError:
                log.info("Console input closed")
                self._exit_evt.set()
                break
            except Exception as e:
                log.exception("Console input error")
                self._print(f"Input error: {e}\n{PROMPT}")
                continue

            try:
                self.process_command(line)
            except Exception as e:
                log.exception("Command %r failed", line)
                self._print(f"Error running '{line.strip()}': {e}\n")

            if not self._exit_evt.is_set():
                self._print(PROMPT)
