# src/fastfib/fmt.py
from __future__ import annotations

import re

import gmpy2
from colorama import Fore, Style

from fastfib.runtime import CFG
from fastfib.utility import dec_digits, pow10

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


def head_tail_fast(n: gmpy2.mpz, head: int, tail: int, digits: int | None = None) -> tuple[str, str]:
    """
    First `head` and last `tail` decimal digits of n without converting n to
    a string: n // 10**(d-head) and n % 10**tail (zero padded).
    """
    d = digits if digits is not None else dec_digits(n)
    if head + tail >= d:
        s = str(n)
        return s[:head], s[-tail:]
    first = n // pow10(d - head)
    last = n % pow10(tail)
    # str() of an mpz is not subject to Python's int/str digit limit
    return str(first), str(last).rjust(tail, "0")


def head_tail_text(s: str, head: int, tail: int) -> tuple[str, str]:
    """Same as head_tail_fast, on an already materialized decimal string."""
    return s[:head], s[-tail:]


def digit_summary(index: int, digits: int) -> str:
    return f"F({index}) has {digits} digits"


def result_lines(index: int, value: gmpy2.mpz, *, digits: int, text: str | None = None) -> list[str]:
    """
    Lines describing F(index): the full number when it is short, otherwise the
    first and last digits. `text` is the full decimal string if the caller
    already built it (for saving); then it is sliced instead of divided.
    """
    full_limit = int(CFG("DISPLAY.FULL_DIGITS_LIMIT", 100))
    head = int(CFG("DISPLAY.HEAD_DIGITS", 50))
    tail = int(CFG("DISPLAY.TAIL_DIGITS", 50))

    if digits <= full_limit:
        return [f"Full number: {text if text is not None else str(value)}"]

    if text is not None:
        first, last = head_tail_text(text, head, tail)
    else:
        first, last = head_tail_fast(value, head, tail, digits)

    return [
        f"First {head} digits: {first}",
        f"Last {tail} digits:  {last}",
    ]


def format_seconds(s: float) -> str:
    return f"{s:.6f} seconds"


def digits_per_second(digits: int, seconds: float) -> float:
    if seconds <= 0:
        return float("inf")
    return digits / seconds


def performance_lines(digits: int, compute_s: float, io_s: float | None = None) -> list[str]:
    rate = digits_per_second(digits, compute_s)
    rate_txt = "inf" if rate == float("inf") else f"{rate:.0f}"
    lines = [
        f"{Fore.YELLOW}{Style.BRIGHT}Performance summary:{Style.RESET_ALL}",
        f"  Computation: {format_seconds(compute_s)} ({rate_txt} digits/second)",
    ]
    if io_s is not None and io_s > 0.001:
        lines.append(f"  System(I/O): {format_seconds(io_s)}")
    return lines
