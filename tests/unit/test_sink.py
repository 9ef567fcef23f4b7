"""
Unit tests for copying and pasting selected text.

External commands are replaced with a recorder; nothing touches the real
clipboard or tmux.
"""

import subprocess

import pyperclip
import pytest

from homie import sink
from homie.errors import SinkError
from homie.sink import paste_to_tmux_pane, write_to_clipboard


class CommandRecorder:
    """Stands in for subprocess.run."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[tuple[list[str], bytes | None]] = []
        self.fail_on = fail_on

    def __call__(self, cmd, input=None, **kwargs):
        self.calls.append((cmd, input))
        if self.fail_on and self.fail_on in cmd:
            raise subprocess.CalledProcessError(1, cmd)
        return subprocess.CompletedProcess(cmd, 0)


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> CommandRecorder:
    rec = CommandRecorder()
    monkeypatch.setattr(sink.subprocess, "run", rec)
    return rec


@pytest.fixture
def copied(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    texts: list[str] = []
    monkeypatch.setattr(sink.pyperclip, "copy", texts.append)
    return texts


class TestWriteToClipboard:
    def test_xclip_on_linux(self, monkeypatch, recorder, copied) -> None:
        monkeypatch.setattr(sink.sys, "platform", "linux")
        monkeypatch.setattr(sink.shutil, "which", lambda name: "/usr/bin/xclip")

        write_to_clipboard("héllo")

        assert recorder.calls == [(["xclip", "-in", "-selection", "clipboard"], "héllo".encode())]
        assert copied == []

    def test_falls_back_without_xclip(self, monkeypatch, recorder, copied) -> None:
        monkeypatch.setattr(sink.sys, "platform", "linux")
        monkeypatch.setattr(sink.shutil, "which", lambda name: None)

        write_to_clipboard("text")

        assert recorder.calls == []
        assert copied == ["text"]

    def test_xclip_disabled(self, monkeypatch, recorder, copied) -> None:
        monkeypatch.setattr(sink.sys, "platform", "linux")
        monkeypatch.setattr(sink.shutil, "which", lambda name: "/usr/bin/xclip")

        write_to_clipboard("text", use_xclip=False)

        assert recorder.calls == []
        assert copied == ["text"]

    def test_other_platforms_use_pyperclip(self, monkeypatch, recorder, copied) -> None:
        monkeypatch.setattr(sink.sys, "platform", "darwin")
        monkeypatch.setattr(sink.shutil, "which", lambda name: "/usr/bin/xclip")

        write_to_clipboard("text")
        assert copied == ["text"]

    def test_xclip_failure(self, monkeypatch) -> None:
        monkeypatch.setattr(sink.sys, "platform", "linux")
        monkeypatch.setattr(sink.shutil, "which", lambda name: "/usr/bin/xclip")
        monkeypatch.setattr(sink.subprocess, "run", CommandRecorder(fail_on="xclip"))

        with pytest.raises(SinkError) as exc_info:
            write_to_clipboard("text")
        assert exc_info.value.target == "xclip"

    def test_pyperclip_failure(self, monkeypatch) -> None:
        def fail(text: str) -> None:
            raise pyperclip.PyperclipException("no copy mechanism")

        monkeypatch.setattr(sink.pyperclip, "copy", fail)
        with pytest.raises(SinkError):
            write_to_clipboard("text", use_xclip=False)


class TestPasteToTmux:
    def test_paste(self, recorder) -> None:
        paste_to_tmux_pane("ls -la", "%3")

        assert recorder.calls == [
            (["tmux", "load-buffer", "-"], b"ls -la"),
            (["tmux", "paste-buffer", "-t", "%3", "-dp"], None),
        ]

    def test_load_failure(self, monkeypatch) -> None:
        rec = CommandRecorder(fail_on="load-buffer")
        monkeypatch.setattr(sink.subprocess, "run", rec)

        with pytest.raises(SinkError, match="load tmux buffer"):
            paste_to_tmux_pane("x", "%1")
        assert len(rec.calls) == 1

    def test_paste_failure_deletes_buffer(self, monkeypatch) -> None:
        rec = CommandRecorder(fail_on="paste-buffer")
        monkeypatch.setattr(sink.subprocess, "run", rec)

        with pytest.raises(SinkError, match="paste to tmux pane"):
            paste_to_tmux_pane("x", "%1")
        assert rec.calls[-1] == (["tmux", "delete-buffer"], None)
