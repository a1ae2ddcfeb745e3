# tests/test_cli.py
"""
Tests for the fastfib command line: argument variants, output and saving.

Run: pytest -v
"""

from __future__ import annotations

import importlib
import sys
import threading

import pytest
from colorama import Fore, Style

from fastfib.cli import ExitRequest, RunRequest, _print_user_error, main, parse_request
from fastfib.engine import fib

# ---------- parse_request -----------------------------------------------------


def test_no_arguments_uses_profile_default():
    req = parse_request([])
    assert req == RunRequest(index=None)


def test_save_flag_and_index_any_order():
    assert parse_request(["-s", "1000"]) == RunRequest(index=1000, save=True)
    assert parse_request(["1000", "-s"]) == RunRequest(index=1000, save=True)


def test_last_index_wins():
    assert parse_request(["5", "7"]).index == 7


def test_engine_overrides():
    req = parse_request(["10", "--threshold-bits", "-1", "--workers", "3", "--quiet"])
    assert req.threshold_bits == -1
    assert req.workers == 3
    assert req.quiet


def test_help_request():
    assert parse_request(["-h"]) == ExitRequest(0, None, show_usage=True)


@pytest.mark.parametrize(
    "argv",
    [["-3"], ["abc"], ["0"], ["-s", "12x"], ["--bogus"], ["--workers", "0"], ["--threshold-bits", "-5"]],
    ids=["negative", "text", "zero", "suffix", "unknown-flag", "workers", "threshold"],
)
def test_invalid_arguments(argv):
    req = parse_request(argv)
    assert isinstance(req, ExitRequest)
    assert req.status == 1
    assert req.show_usage
    assert req.message.startswith("Error:")


# ---------- main --------------------------------------------------------------


def test_small_number_printed_in_full(capsys):
    assert main(["10", "--quiet"]) == 0
    out = capsys.readouterr().out
    assert "Computing F(10)..." in out
    assert "F(10) has 2 digits" in out
    assert "Full number: 55" in out
    assert "Performance summary:" in out
    assert "digits/second" in out


def test_large_number_first_and_last_digits(capsys):
    s = str(fib(2000))
    assert main(["2000"]) == 0
    out = capsys.readouterr().out
    assert f"F(2000) has {len(s)} digits" in out
    assert f"First 50 digits: {s[:50]}" in out
    assert f"Last 50 digits:  {s[-50:]}" in out
    assert "Full number" not in out


def test_save_writes_file(tmp_path, capsys):
    assert main(["-s", "100", "--output", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "Result will be saved to file." in out
    assert "Writing to file Fibonacci_100.txt... Number saved to:" in out
    assert "Full number: 354224848179261915075" in out
    saved = tmp_path / "Fibonacci_100.txt"
    assert saved.read_text(encoding="utf-8") == "F(100) = 354224848179261915075\n"


def test_save_defaults_to_current_directory(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["-s", "20"]) == 0
    assert (tmp_path / "Fibonacci_20.txt").read_text(encoding="utf-8") == "F(20) = 6765\n"


def test_save_failure_is_a_warning(tmp_path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    assert main(["-s", "10", "--output", str(blocker)]) == 0
    out = capsys.readouterr().out
    assert "failed." in out
    assert "Couldn't create file Fibonacci_10.txt" in out
    # result still shown
    assert "Full number: 55" in out


@pytest.mark.parametrize("arg", ["-3", "abc", "0"])
def test_invalid_argument_exits_without_computing(arg, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["-s", arg]) == 1
    captured = capsys.readouterr()
    assert f"Invalid argument '{arg}'" in captured.err
    assert "usage: fastfib" in captured.err
    assert "Computing" not in captured.out
    assert not list(tmp_path.glob("Fibonacci_*"))


def test_help_exits_zero(capsys):
    assert main(["-h"]) == 0
    out = capsys.readouterr().out
    assert "usage: fastfib" in out
    assert "-s, --save" in out


def test_unknown_profile(capsys):
    assert main(["10", "--profile", "nope"]) == 2
    err = capsys.readouterr().err
    assert "Unknown profile: 'nope'" in err
    lines = [ln.split(None, 1) for ln in err.splitlines() if ln.startswith("  ")]
    listed = {parts[0]: parts[1] for parts in lines if len(parts) == 2}
    assert listed["sequential"].startswith("Single-threaded")
    assert listed["default"].startswith("Balanced settings")


def test_profile_default_index_used(isolated_workspace, capsys):
    (isolated_workspace / "profiles").mkdir(parents=True)
    (isolated_workspace / "profiles" / "small.toml").write_text(
        "[ENGINE]\nDEFAULT_INDEX = 30\n", encoding="utf-8"
    )
    assert main(["--profile", "small"]) == 0
    out = capsys.readouterr().out
    assert "Computing F(30)..." in out
    assert "Full number: 832040" in out


def test_broken_profile_is_friendly_error(isolated_workspace, capsys):
    (isolated_workspace / "profiles").mkdir(parents=True)
    (isolated_workspace / "profiles" / "bad.toml").write_text("[ENGINE\n", encoding="utf-8")
    assert main(["10", "--profile", "bad"]) == 2
    assert "bad.toml" in capsys.readouterr().err


def test_always_split_gives_same_output(capsys):
    assert main(["3000", "--threshold-bits", "0", "--workers", "2"]) == 0
    split_out = capsys.readouterr().out
    assert main(["3000", "--threshold-bits", "-1"]) == 0
    seq_out = capsys.readouterr().out
    pick = [ln for ln in split_out.splitlines() if ln.startswith(("First", "Last", "F(3000)"))]
    assert pick
    assert pick == [ln for ln in seq_out.splitlines() if ln.startswith(("First", "Last", "F(3000)"))]


def test_debug_lines_on_stderr(capsys):
    assert main(["10", "--debug"]) == 0
    err = capsys.readouterr().err
    assert "[debug]" in err
    assert "active profile: default" in err
    assert "threshold_bits=16000000" in err


def test_memory_error_propagates(monkeypatch):
    def exhausted(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr("fastfib.cli.compute", exhausted)
    with pytest.raises(MemoryError):
        main(["10"])


def test_unexpected_error_reported(monkeypatch, capsys):
    def broken(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("fastfib.cli.compute", broken)
    assert main(["10"]) == 1
    err = capsys.readouterr().err
    assert "Unexpected error: RuntimeError: kaboom" in err


# ---------- error reporting ---------------------------------------------------


def test_user_error_prefix_is_colored_once(capsys):
    _print_user_error("Error: Invalid argument 'abc'")
    _print_user_error("profile broken")
    err = capsys.readouterr().err.splitlines()
    assert err == [
        f"{Fore.RED}Error:{Style.RESET_ALL} Invalid argument 'abc'",
        f"{Fore.RED}Error:{Style.RESET_ALL} profile broken",
    ]


def test_debug_hooks_restored_after_main(capsys):
    before = (sys.excepthook, threading.excepthook)
    assert main(["10", "--debug"]) == 0
    assert (sys.excepthook, threading.excepthook) == before


def test_debug_hooks_restored_when_error_propagates(monkeypatch, capsys):
    def broken(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("fastfib.cli.compute", broken)
    before = (sys.excepthook, threading.excepthook)
    with pytest.raises(RuntimeError, match="kaboom"):
        main(["10", "--debug"])
    assert (sys.excepthook, threading.excepthook) == before


def test_missing_gmpy2_fails_at_import(monkeypatch):
    for name in [m for m in sys.modules if m == "fastfib" or m.startswith("fastfib.")]:
        monkeypatch.delitem(sys.modules, name)
    monkeypatch.setitem(sys.modules, "gmpy2", None)
    with pytest.raises(ImportError, match="gmpy2"):
        importlib.import_module("fastfib.cli")
