"""
Clipboard capture for homie.

The daemon runs two pieces that talk over a queue:

    ClipboardWatcher  polls the clipboard on a background thread and puts
                      each new text payload on its ``changes`` queue. It
                      puts ``CLOSED`` when it stops.
    track_clipboard   takes payloads off the queue and writes them to the
                      store. A failed write ends the session with an error.

Execution Flow:
    1. watcher.start(cancel) reads the clipboard once (fails fast if no
       clipboard backend is available)
    2. track_clipboard(cancel, db, watcher.changes) blocks until shutdown
    3. SIGINT/SIGTERM set ``cancel``; both sides exit within one poll
"""

import logging
import queue
import threading
from collections.abc import Callable
from typing import Protocol

import pyperclip

from homie.errors import CaptureError, ClipboardInitError, StorageError

logger = logging.getLogger(__name__)

# Marks the end of a payload queue
CLOSED = object()

# How often track_clipboard checks for cancellation while the queue is idle
POLL_INTERVAL = 0.05

# How often the watcher reads the clipboard
WATCH_INTERVAL = 0.5


class HistoryWriter(Protocol):
    """What the capture loop needs from the store."""

    def write(self, payload: bytes | str) -> None: ...

    def close(self) -> None: ...


class ClipboardWatcher:
    """
    Poll the clipboard and queue every change.

    Only text is tracked. Empty clipboards and repeats of the previous
    value are skipped; deduplication across time is the store's job.

    Attributes:
        changes: Queue of UTF-8 payloads, terminated by CLOSED
        interval: Seconds between clipboard reads
    """

    def __init__(
        self,
        read_text: Callable[[], str] | None = None,
        interval: float = WATCH_INTERVAL,
    ) -> None:
        self._read_text = read_text or pyperclip.paste
        self.interval = interval
        self.changes: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._cancel: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._last = ""

    def start(self, cancel: threading.Event | None = None) -> queue.Queue:
        """
        Start watching.

        Args:
            cancel: Optional shutdown event shared with the capture loop

        Returns:
            The ``changes`` queue

        Raises:
            ClipboardInitError: If the clipboard cannot be read at all
        """
        try:
            self._last = self._read_text() or ""
        except pyperclip.PyperclipException as e:
            raise ClipboardInitError(underlying_error=str(e)) from e

        self._cancel = cancel
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="clipboard-watcher",
        )
        self._thread.start()
        return self.changes

    def stop(self, timeout: float = 1.0) -> None:
        """Stop polling and wait briefly for the thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _stopping(self) -> bool:
        return self._stop.is_set() or (self._cancel is not None and self._cancel.is_set())

    def _run(self) -> None:
        try:
            while not self._stop.wait(self.interval):
                if self._stopping():
                    break
                try:
                    text = self._read_text() or ""
                except pyperclip.PyperclipException as e:
                    logger.error("Clipboard read failed, stopping watcher: %s", e)
                    break
                if text and text != self._last:
                    self.changes.put(text.encode("utf-8"))
                self._last = text
        finally:
            self.changes.put(CLOSED)


def track_clipboard(
    cancel: threading.Event,
    db: HistoryWriter,
    changes: queue.Queue,
    poll_interval: float = POLL_INTERVAL,
) -> None:
    """
    Persist clipboard payloads until shutdown.

    Returns normally when ``cancel`` is set or when ``changes`` yields
    CLOSED. Payloads still queued at cancellation are not drained. The
    store is closed exactly once on every exit path.

    Args:
        cancel: Shutdown event
        db: Store receiving the writes (owned by this function from now on)
        changes: Payload queue terminated by CLOSED
        poll_interval: Upper bound on how long cancellation goes unnoticed

    Raises:
        CaptureError: If a write fails; the StorageError is chained
    """
    try:
        while not cancel.is_set():
            try:
                item = changes.get(timeout=poll_interval)
            except queue.Empty:
                continue
            if item is CLOSED:
                return
            try:
                db.write(item)
            except StorageError as e:
                raise CaptureError(
                    message=f"Failed to persist clipboard item: {e.message}",
                    underlying_error=str(e),
                ) from e
    finally:
        db.close()
