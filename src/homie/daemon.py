"""
Daemon lifecycle for homie.

Only one capture daemon should run per user. ``homie start`` terminates
any other ``homie`` process, then launches ``homie run`` in a new session;
``homie run`` is the daemon body:

    1. Open the history database (fatal on failure)
    2. Apply the retention policy (logged and skipped on failure)
    3. Ignore SIGHUP, turn SIGINT/SIGTERM into a cancel event
    4. Watch the clipboard and persist changes until cancelled

Process enumeration goes through the ProcessLister protocol so the
single-instance logic can be tested with in-memory fakes.
"""

import logging
import os
import signal
import subprocess
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from types import FrameType
from typing import Protocol

from homie.capture import ClipboardWatcher, track_clipboard
from homie.config import AppContext
from homie.errors import ProcessError, StorageError
from homie.store import HistoryDB, clean_old_history

logger = logging.getLogger(__name__)

PROCESS_NAME = "homie"
PS_TIMEOUT = 5


# =============================================================================
# Process Enumeration
# =============================================================================


class Process(Protocol):
    """A running process that can be named and terminated."""

    pid: int

    def name(self) -> str: ...

    def terminate(self) -> None: ...


class ProcessLister(Protocol):
    """Enumerates running processes."""

    def processes(self) -> Sequence[Process]: ...

    def current_pid(self) -> int: ...


@dataclass
class OsProcess:
    """A process reported by ``ps``."""

    pid: int
    command: str

    def name(self) -> str:
        return self.command

    def terminate(self) -> None:
        os.kill(self.pid, signal.SIGTERM)


class PsProcessLister:
    """ProcessLister backed by ``ps -eo pid=,comm=``."""

    def processes(self) -> list[OsProcess]:
        try:
            result = subprocess.run(
                ["ps", "-eo", "pid=,comm="],
                capture_output=True,
                text=True,
                timeout=PS_TIMEOUT,
                check=True,
                shell=False,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise ProcessError(underlying_error=str(e)) from e
        return parse_ps_output(result.stdout)

    def current_pid(self) -> int:
        return os.getpid()


def parse_ps_output(output: str) -> list[OsProcess]:
    """Parse ``pid comm`` lines, skipping anything malformed."""
    processes = []
    for line in output.splitlines():
        pid, _, command = line.strip().partition(" ")
        if not pid.isdigit() or not command:
            continue
        processes.append(OsProcess(pid=int(pid), command=command.strip()))
    return processes


def stop_all_instances(lister: ProcessLister, name: str = PROCESS_NAME) -> int:
    """
    Terminate every process called ``name`` except the current one.

    Processes whose name cannot be read are skipped. Failing to terminate
    one process is logged and does not stop the others.

    Returns:
        Number of processes terminated

    Raises:
        ProcessError: If the process list cannot be read
    """
    try:
        processes = lister.processes()
    except ProcessError:
        raise
    except OSError as e:
        raise ProcessError(underlying_error=str(e)) from e

    current_pid = lister.current_pid()
    terminated = 0
    for process in processes:
        try:
            process_name = process.name()
        except OSError:
            continue
        if process_name != name or process.pid == current_pid:
            continue
        try:
            process.terminate()
        except OSError as e:
            logger.warning("Failed to terminate %s process (pid=%d): %s", name, process.pid, e)
            continue
        terminated += 1
    return terminated


def spawn_daemon(executable: str | None = None) -> subprocess.Popen:
    """
    Launch ``<executable> run`` detached from the current terminal.

    Args:
        executable: Program to run (defaults to the current argv[0])
    """
    cmd = [executable or sys.argv[0], "run"]
    return subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


# =============================================================================
# Daemon Body
# =============================================================================


def install_signal_handlers(cancel: threading.Event) -> None:
    """Survive terminal hang-ups and cancel on SIGINT/SIGTERM."""
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, signal.SIG_IGN)

    def _handle(signum: int, frame: FrameType | None) -> None:
        logger.debug("Received signal %d, shutting down", signum)
        cancel.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_daemon(
    context: AppContext,
    cancel: threading.Event | None = None,
    watcher: ClipboardWatcher | None = None,
    install_signals: bool = True,
) -> None:
    """
    Capture clipboard history until cancelled.

    Args:
        context: Settings and database path
        cancel: Shutdown event (created if not given)
        watcher: Clipboard source (a pyperclip-backed watcher if not given)
        install_signals: Install SIGINT/SIGTERM/SIGHUP handlers; must be
                         False when not called from the main thread

    Raises:
        StorageError: If the database cannot be opened
        CaptureError: If the clipboard cannot be watched or a write fails
    """
    db = HistoryDB(context.db_path)

    try:
        result = clean_old_history(db, context.settings)
        if result.deleted:
            logger.info("Cleanup (%s) removed %d entries", result.strategy, result.deleted)
    except StorageError as e:
        logger.error("History cleanup failed: %s", e)

    cancel = cancel or threading.Event()
    if install_signals:
        install_signal_handlers(cancel)

    watcher = watcher or ClipboardWatcher()
    try:
        changes = watcher.start(cancel)
    except Exception:
        db.close()
        raise

    try:
        track_clipboard(cancel, db, changes)
    finally:
        watcher.stop()
