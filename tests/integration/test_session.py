"""
End-to-end tests: a capture daemon feeding the history browser.

The daemon runs in a thread with a fake clipboard and no signal handlers.
"""

import threading
import time
from pathlib import Path

import pyperclip
import pytest

from homie.capture import ClipboardWatcher
from homie.config import AppContext
from homie.daemon import run_daemon
from homie.errors import ClipboardInitError
from homie.finder import Selected, list_history
from homie.schema import Settings
from homie.store import HistoryDB


class FakeClipboard:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.broken = False

    def read(self) -> str:
        if self.broken:
            raise pyperclip.PyperclipException("no clipboard")
        return self.text


class PickAll:
    """Selects every item currently visible."""

    def select(self, items, projector, on_need_more, lock):
        with lock.read():
            return Selected(indices=tuple(range(len(items))))


def start_daemon(context: AppContext, watcher: ClipboardWatcher) -> tuple[threading.Thread, threading.Event, list]:
    cancel = threading.Event()
    errors: list[BaseException] = []

    def target() -> None:
        try:
            run_daemon(context, cancel=cancel, watcher=watcher, install_signals=False)
        except BaseException as e:
            errors.append(e)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, cancel, errors


class TestCaptureSession:
    def test_captures_until_cancelled(self, temp_dir: Path) -> None:
        context = AppContext(settings=Settings(), db_path=temp_dir / "homie.db")
        clipboard = FakeClipboard("before start")
        watcher = ClipboardWatcher(read_text=clipboard.read, interval=0.01)

        thread, cancel, errors = start_daemon(context, watcher)
        for text in ("echo one", "echo two", "echo one"):
            time.sleep(0.1)
            clipboard.text = text
        time.sleep(0.1)

        cancel.set()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert errors == []
        with HistoryDB(context.db_path) as db:
            assert [e.text for e in db.read(0, 10)] == ["echo one", "echo two"]
            assert list_history(db, PickAll(), page_size=10) == "echo one echo two"

    def test_cleanup_runs_before_capture(self, temp_dir: Path) -> None:
        path = temp_dir / "homie.db"
        with HistoryDB(path) as db:
            for i in range(30):
                db.write(f"old {i}".encode())

        context = AppContext(settings=Settings(clean_up=True, max_size=10, limit=5), db_path=path)
        watcher = ClipboardWatcher(read_text=FakeClipboard("x").read, interval=0.01)

        thread, cancel, errors = start_daemon(context, watcher)
        time.sleep(0.1)
        cancel.set()
        thread.join(timeout=2.0)

        assert errors == []
        with HistoryDB(path) as db:
            assert db.count() == 5

    def test_clipboard_unavailable(self, temp_dir: Path) -> None:
        context = AppContext(settings=Settings(), db_path=temp_dir / "homie.db")
        clipboard = FakeClipboard()
        clipboard.broken = True

        with pytest.raises(ClipboardInitError):
            run_daemon(
                context,
                watcher=ClipboardWatcher(read_text=clipboard.read),
                install_signals=False,
            )

    def test_browse_while_capturing(self, temp_dir: Path) -> None:
        """A browser and a running daemon share the database file."""
        context = AppContext(settings=Settings(), db_path=temp_dir / "homie.db")
        clipboard = FakeClipboard()
        watcher = ClipboardWatcher(read_text=clipboard.read, interval=0.01)
        thread, cancel, errors = start_daemon(context, watcher)

        try:
            time.sleep(0.1)
            clipboard.text = "while browsing"
            time.sleep(0.2)
            with HistoryDB(context.db_path) as db:
                assert list_history(db, PickAll(), page_size=5) == "while browsing"
        finally:
            cancel.set()
            thread.join(timeout=2.0)

        assert errors == []
