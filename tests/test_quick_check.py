"""
Tests for the standalone smoke check, run against the fake fcsh executable.
"""
import os
import stat
import sys

import quick_check
from fcshctl import EXIT_FCSH_NOT_FOUND, EXIT_OK

FAKE_FCSH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fake_fcsh.py")


def _flex_home(tmp_path):
    bin_dir = tmp_path / "flex" / "bin"
    bin_dir.mkdir(parents=True)
    fcsh = bin_dir / "fcsh"
    fcsh.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_FCSH}" "$@"\n')
    fcsh.chmod(fcsh.stat().st_mode | stat.S_IXUSR)
    return str(tmp_path / "flex")


def test_reports_targets(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("FLEX_HOME", _flex_home(tmp_path))
    assert quick_check.main(["./a.as"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "fcsh is up" in out
    assert "./a.swf (1024 bytes)" in out
    assert "target 1: mxmlc ./a.as" in out


def test_no_targets(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("FLEX_HOME", _flex_home(tmp_path))
    assert quick_check.main([]) == EXIT_OK
    assert "no compile targets" in capsys.readouterr().out


def test_missing_flex_home(monkeypatch, capsys):
    monkeypatch.delenv("FLEX_HOME", raising=False)
    assert quick_check.main([]) == EXIT_FCSH_NOT_FOUND
    assert "FLEX_HOME is not set" in capsys.readouterr().err


def test_flex_home_without_fcsh(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("FLEX_HOME", str(tmp_path))
    assert quick_check.main([]) == EXIT_FCSH_NOT_FOUND
    assert "fcsh not found" in capsys.readouterr().err
