"""
Tests for the command-line entry point.
"""

import pytest

from codeguardian import __version__
from codeguardian.cli import TerminalSurface, _line_end_offset, main


def test_no_command_prints_help(capsys):
    main([])
    assert "usage: codeguardian" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_line_end_offset():
    text = "one\ntwo\nthree"
    assert _line_end_offset(text, 1) == 3
    assert _line_end_offset(text, 2) == 7
    assert _line_end_offset(text, 3) == 13
    assert _line_end_offset(text, 99) == 13


def test_terminal_surface(capsys):
    surface = TerminalSurface()
    surface.show(["a()", "b()\nc()"])
    assert surface.visible
    out = capsys.readouterr().out
    assert "[1]" in out and "[2]" in out
    assert "c()" in out
    surface.close()
    assert not surface.visible


def test_tap_alias_reads_log(tmp_path, capsys):
    log = tmp_path / "wire.jsonl"
    log.write_text('{"ts": "2026-01-01T00:00:00+00:00", "dir": "inbound", "role": "assistant", "content": "hello"}\n')
    main(["tail", "--log", str(log), "--no-follow", "--raw"])
    assert '"hello"' in capsys.readouterr().out
