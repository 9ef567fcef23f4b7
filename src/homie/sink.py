"""
Send selected history back out.

    write_to_clipboard  puts text on the system clipboard, through xclip on
                        Linux when available and pyperclip otherwise
    paste_to_tmux_pane  pastes text into a tmux pane via a tmux buffer
"""

import logging
import shutil
import subprocess
import sys

import pyperclip

from homie.errors import SinkError

logger = logging.getLogger(__name__)

XCLIP = "xclip"
TMUX = "tmux"
COMMAND_TIMEOUT = 5


def _run(cmd: list[str], text: str | None = None) -> None:
    """Run a helper command, feeding ``text`` on stdin."""
    subprocess.run(
        cmd,
        input=text.encode("utf-8") if text is not None else None,
        capture_output=True,
        timeout=COMMAND_TIMEOUT,
        check=True,
        shell=False,
    )


def write_to_clipboard(text: str, use_xclip: bool = True) -> None:
    """
    Copy ``text`` to the system clipboard.

    Args:
        text: Text to copy
        use_xclip: Prefer xclip on Linux (falls back when it isn't installed)

    Raises:
        SinkError: If the clipboard cannot be written
    """
    if use_xclip and shutil.which(XCLIP) is None:
        logger.info("xclip not found, falling back to pyperclip")
        use_xclip = False

    if sys.platform.startswith("linux") and use_xclip:
        try:
            _run([XCLIP, "-in", "-selection", "clipboard"], text)
        except (subprocess.SubprocessError, OSError) as e:
            raise SinkError(target="xclip", underlying_error=str(e)) from e
        return

    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise SinkError(target="clipboard", underlying_error=str(e)) from e


def paste_to_tmux_pane(text: str, pane_id: str) -> None:
    """
    Paste ``text`` into tmux pane ``pane_id``.

    Loads a tmux buffer, then pastes and deletes it. If pasting fails the
    buffer is deleted so it does not linger in the buffer list.

    Raises:
        SinkError: If either tmux command fails
    """
    try:
        _run([TMUX, "load-buffer", "-"], text)
    except (subprocess.SubprocessError, OSError) as e:
        raise SinkError(
            target=f"tmux pane {pane_id}",
            message=f"Failed to load tmux buffer: {e}",
            underlying_error=str(e),
        ) from e

    try:
        _run([TMUX, "paste-buffer", "-t", pane_id, "-dp"])
    except (subprocess.SubprocessError, OSError) as e:
        try:
            _run([TMUX, "delete-buffer"])
        except (subprocess.SubprocessError, OSError) as cleanup_error:
            logger.debug("Failed to delete tmux buffer: %s", cleanup_error)
        raise SinkError(
            target=f"tmux pane {pane_id}",
            message=f"Failed to paste to tmux pane: {e}",
            underlying_error=str(e),
        ) from e
