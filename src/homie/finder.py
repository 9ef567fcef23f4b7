"""
Incremental history browsing for homie.

The history can be long, so the selector starts with one page and asks for
more only when the user runs out of candidates:

    HistoryLoader  owns the growing ``window`` of entries. A background
                   thread waits for "need more" signals and appends the next
                   page from the store under the window's write lock.
    Selector       renders and matches ``window`` under the read lock and
                   calls ``on_need_more`` when nothing is left to show.
    list_history   wires the two together and turns the selection into text.

Concurrency:
    - Signals go through a one-slot queue; bursts coalesce and the
      signaller never blocks
    - Pages are fetched strictly one after another, so they are appended in
      increasing offset order
    - The store read happens outside the lock; only the append is locked
    - A failed page fetch is logged and the loop keeps accepting signals
"""

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from homie.errors import StorageError
from homie.rwlock import RWLock
from homie.schema import HistoryEntry

logger = logging.getLogger(__name__)

# How often the loader thread checks for close/cancel while idle
POLL_INTERVAL = 0.05

# Bounded wait for the loader thread on close()
JOIN_TIMEOUT = 1.0

DEFAULT_SEPARATOR = " "


# =============================================================================
# Selection Results
# =============================================================================


@dataclass(frozen=True)
class Selected:
    """The user picked one or more entries, by window index."""

    indices: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Aborted:
    """The user left the selector without picking anything."""


SelectionResult = Selected | Aborted


# =============================================================================
# Capabilities
# =============================================================================


class HistoryReader(Protocol):
    """Read access to the history, as provided by HistoryDB."""

    def read(self, offset: int, limit: int) -> list[HistoryEntry]: ...

    def count(self) -> int: ...


class Selector(Protocol):
    """
    An interactive selection surface.

    ``items`` grows while the selector runs; implementations must read it
    only while holding ``lock.read()``.
    """

    def select(
        self,
        items: list[Any],
        projector: Callable[[int], str],
        on_need_more: Callable[[], None],
        lock: RWLock,
    ) -> SelectionResult: ...


# =============================================================================
# Loader
# =============================================================================


class HistoryLoader:
    """
    A growing, paginated view of the history.

    Usage:
        loader = HistoryLoader(db, page_size=20)
        loader.load_first_page()
        with loader:
            loader.request_more()
            ...

    Attributes:
        window: Entries loaded so far, most recent first
        lock: Guards ``window``
        offset: Offset of the last page loaded
        total: Entry count snapshotted by load_first_page()
        page_size: Entries per page
    """

    def __init__(
        self,
        reader: HistoryReader,
        page_size: int,
        cancel: threading.Event | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self._reader = reader
        self.page_size = page_size
        self.window: list[HistoryEntry] = []
        self.lock = RWLock()
        self.offset = 0
        self.total = 0
        self._signals: queue.Queue[None] = queue.Queue(maxsize=1)
        self._closed = threading.Event()
        self._cancel = cancel or threading.Event()
        self._thread: threading.Thread | None = None

    def load_first_page(self) -> None:
        """
        Load the first page and snapshot the total count.

        Raises:
            StorageError: If either query fails
        """
        page = self._reader.read(0, self.page_size)
        total = self._reader.count()
        with self.lock.write():
            self.window[:] = page
        self.offset = 0
        self.total = total

    def start(self) -> None:
        """Start the background page loader."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="history-loader",
        )
        self._thread.start()

    def request_more(self) -> bool:
        """
        Ask for the next page without blocking.

        Returns:
            True if a new signal was queued, False if one was already
            pending or the loader is closed
        """
        if self._closed.is_set():
            return False
        try:
            self._signals.put_nowait(None)
        except queue.Full:
            return False
        return True

    def load_next_page(self) -> int:
        """
        Fetch and append the page after ``offset``.

        Does nothing once ``offset`` reaches ``total``. The offset only
        advances when the read succeeds, so a failed page is fetched again
        on the next request.

        Returns:
            Number of entries appended
        """
        if self.offset >= self.total:
            return 0

        next_offset = self.offset + self.page_size
        try:
            page = self._reader.read(next_offset, self.page_size)
        except StorageError as e:
            logger.warning(
                "Failed to load more history items (offset=%d, limit=%d, total=%d): %s",
                next_offset,
                self.page_size,
                self.total,
                e,
            )
            return 0

        self.offset = next_offset
        if page:
            with self.lock.write():
                self.window.extend(page)
        return len(page)

    def close(self, timeout: float = JOIN_TIMEOUT) -> None:
        """Stop accepting signals and wait a bounded time for the thread."""
        self._closed.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.debug("History loader still busy after %.1fs", timeout)

    @property
    def running(self) -> bool:
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def snapshot(self) -> list[HistoryEntry]:
        """Copy of the current window."""
        with self.lock.read():
            return list(self.window)

    def projector(self, index: int) -> str:
        """Display string for ``window[index]``; caller holds the read lock."""
        return self.window[index].text

    def __len__(self) -> int:
        with self.lock.read():
            return len(self.window)

    def __enter__(self) -> "HistoryLoader":
        """Start the background loader."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Close the loader."""
        self.close()

    def _stopping(self) -> bool:
        return self._closed.is_set() or self._cancel.is_set()

    def _run(self) -> None:
        while not self._stopping():
            try:
                self._signals.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            if self._stopping():
                return
            try:
                self.load_next_page()
            except Exception:
                logger.exception("Unexpected error while loading more history items")


# =============================================================================
# Browse
# =============================================================================


def list_history(
    reader: HistoryReader,
    selector: Selector,
    page_size: int,
    separator: str = DEFAULT_SEPARATOR,
) -> str:
    """
    Let the user pick entries from the history.

    Args:
        reader: Store to page through
        selector: Interactive selection surface
        page_size: Entries per page
        separator: Joins multiple selected entries

    Returns:
        The selected text, or "" if the user aborted or picked nothing

    Raises:
        StorageError: If the first page or the count cannot be read
    """
    loader = HistoryLoader(reader, page_size)
    loader.load_first_page()

    with loader:
        result = selector.select(
            loader.window,
            loader.projector,
            loader.request_more,
            loader.lock,
        )

    if isinstance(result, Aborted) or not result.indices:
        return ""

    with loader.lock.read():
        texts = [loader.window[i].text for i in result.indices]
    return separator.join(texts)
