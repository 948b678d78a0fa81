"""
Line input that can be abandoned.

A blocking readline() can't be interrupted from another thread, so a daemon
pump thread does the reading and hands lines over through a queue. cancel()
drops a marker into the same queue, which wakes a pending read_line() at once.
The pump itself may stay blocked in readline(); being a daemon it dies with
the process.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
import time
from typing import Optional, TextIO, Union

log = logging.getLogger(__name__)

# A stream that keeps failing is treated as closed after this many errors in a row
MAX_CONSECUTIVE_ERRORS = 5
ERROR_BACKOFF_SECONDS = 0.2


class _Marker:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


CANCELLED = _Marker("CANCELLED")
EOF = _Marker("EOF")

ReadResult = Union[str, _Marker, Exception]


class ReadCancelled(Exception):
    """A pending read was abandoned by cancel()."""


class CancellableLineReader:
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._queue: "queue.Queue[ReadResult]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def _ensure_started(self) -> None:
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(target=self._pump, name="ConsoleLineReader", daemon=True)
                self._thread.start()

    def _pump(self) -> None:
        errors = 0
        while True:
            try:
                line = self._stream.readline()
            except Exception as e:
                if getattr(self._stream, "closed", False):
                    self._queue.put(EOF)
                    return
                errors += 1
                self._queue.put(e)
                if errors >= MAX_CONSECUTIVE_ERRORS:
                    log.error("Giving up on console input after %d consecutive errors", errors)
                    self._queue.put(EOF)
                    return
                time.sleep(ERROR_BACKOFF_SECONDS)
                continue

            errors = 0
            if line == "":
                self._queue.put(EOF)
                return
            self._queue.put(line.rstrip("\r\n"))

    def read_line(self) -> str:
        """
        Block for the next line.

        Raises:
            ReadCancelled: cancel() was called.
            EOFError: the stream has no more input.
            Exception: whatever the stream raised for this read.
        """
        self._ensure_started()
        item = self._queue.get()
        if item is CANCELLED:
            raise ReadCancelled()
        if item is EOF:
            # Keep reporting EOF to later readers
            self._queue.put(EOF)
            raise EOFError("end of input")
        if isinstance(item, Exception):
            raise item
        return item

    def cancel(self) -> None:
        self._queue.put(CANCELLED)
