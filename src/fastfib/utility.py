# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

from functools import lru_cache

import gmpy2


class UserInputError(Exception):
    pass


@lru_cache(maxsize=64)
def pow10(k: int) -> gmpy2.mpz:
    """10**k as an mpz; cached because the same powers are reused for head/tail."""
    return gmpy2.mpz(10) ** k


def dec_digits(n: int | gmpy2.mpz) -> int:
    """Exact decimal digit count without building the decimal string."""
    n = abs(gmpy2.mpz(n))
    if n == 0:
        return 1
    # GMP's estimate is exact or one too large
    est = gmpy2.num_digits(n, 10)
    if est > 1 and n < pow10(est - 1):
        est -= 1
    return est


def fib_linear(n: int) -> list[int]:
    """
    Return [F(0), F(1), ..., F(n)] by the plain recurrence.
    Slow, but independent of the doubling engine; used as a reference.
    """
    if n < 0:
        raise ValueError(f"index must be non-negative, got {n}")
    out = [0]
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
        out.append(a)
    return out


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out


def parse_index(text: str) -> int:
    """
    Parse a Fibonacci index given on the command line.
    Accepts plain decimal digits with optional '_' separators (20_000_000).
    Raises UserInputError for anything that is not a positive integer.
    """
    s = (text or "").strip().replace("_", "")
    if not s.isdigit() or not s.isascii():
        raise UserInputError(f"Invalid argument '{text}'")
    n = int(s)
    if n <= 0:
        raise UserInputError(f"Invalid argument '{text}'")
    return n
