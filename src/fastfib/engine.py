# src/fastfib/engine.py
"""
Fast-doubling Fibonacci engine.

    F(2k)   = F(k) * (2*F(k+1) - F(k))
    F(2k+1) = F(k+1)^2 + F(k)^2

compute(n) recurses on n // 2 and doubles the returned pair, so F(n) costs
O(log n) big-integer multiplications. The two identities only read the child
pair and write separate outputs; once the operands are large enough the first
one is handed to a worker thread while the calling thread evaluates the second,
and the two meet again before the parity correction.
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import nullcontext
from dataclasses import dataclass

import gmpy2

LOG2_PHI = math.log2((1 + math.sqrt(5)) / 2)
LOG10_PHI = math.log10((1 + math.sqrt(5)) / 2)
LOG10_SQRT5 = math.log10(math.sqrt(5))

DEFAULT_THRESHOLD_BITS = 16_000_000
DEFAULT_MAX_WORKERS = 2

ProgressFn = Callable[[int, int], None]
FibPair = tuple[gmpy2.mpz, gmpy2.mpz]


@dataclass(frozen=True)
class EngineOptions:
    """
    threshold_bits: split a doubling step across threads once F(k+1) has at
                    least this many bits. 0 = always split, None = never.
    max_workers:    size of the pool the engine creates when no executor is
                    passed to compute().
    """
    threshold_bits: int | None = DEFAULT_THRESHOLD_BITS
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self):
        if self.threshold_bits is not None and self.threshold_bits < 0:
            raise ValueError(f"threshold_bits must be >= 0 or None, got {self.threshold_bits}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")


SEQUENTIAL = EngineOptions(threshold_bits=None, max_workers=1)


def fib_bits_estimate(n: int) -> int:
    """Approximate bit length of F(n) (n * log2(phi)); exact to within a couple of bits."""
    return int(n * LOG2_PHI) if n > 0 else 0


def digits_estimate(n: int) -> int:
    """Approximate decimal digit count of F(n) from Binet's formula."""
    if n < 2:
        return 1
    return max(1, round(n * LOG10_PHI - LOG10_SQRT5))


def recursion_depth(n: int) -> int:
    """Number of doubling steps compute(n) performs (0 for n == 0)."""
    return n.bit_length()


def _gil_released():
    """Context in which this thread's mpz arithmetic lets other threads run."""
    # gmpy2 contexts are per thread, so every branch sets its own
    return gmpy2.context(gmpy2.get_context(), allow_release_gil=True)


def _double_even(f0: gmpy2.mpz, f1: gmpy2.mpz) -> gmpy2.mpz:
    # F(2k) = F(k) * (2*F(k+1) - F(k))
    with _gil_released():
        temp = (f1 << 1) - f0
        return f0 * temp


def _double_odd(f0: gmpy2.mpz, f1: gmpy2.mpz) -> gmpy2.mpz:
    # F(2k+1) = F(k+1)^2 + F(k)^2
    with _gil_released():
        return f1 * f1 + f0 * f0


def _should_split(f1: gmpy2.mpz, threshold_bits: int | None) -> bool:
    return threshold_bits is not None and f1.bit_length() >= threshold_bits


def _will_split(n: int, threshold_bits: int | None) -> bool:
    """Does any level of compute(n) reach the threshold? (the top level has the largest operands)"""
    if threshold_bits is None or n == 0:
        return False
    if threshold_bits == 0:
        return True
    # top level operand is F(n // 2 + 1); allow a little slack for the estimate
    return fib_bits_estimate(n // 2 + 1) + 2 >= threshold_bits


class _Doubler:
    def __init__(self, threshold_bits: int | None, pool: Executor | None, progress: ProgressFn | None, total: int):
        self.threshold_bits = threshold_bits
        self.pool = pool
        self.progress = progress
        self.total = total
        self.done = 0

    def pair(self, n: int) -> FibPair:
        if n == 0:
            return gmpy2.mpz(0), gmpy2.mpz(1)

        f0, f1 = self.pair(n // 2)

        if self.pool is not None and _should_split(f1, self.threshold_bits):
            # fork: F(2k) on a worker, F(2k+1) here; join before reading a
            fut = self.pool.submit(_double_even, f0, f1)
            b = _double_odd(f0, f1)
            a = fut.result()
        else:
            a = _double_even(f0, f1)
            b = _double_odd(f0, f1)

        if n & 1:
            a, b = b, a
            b = a + b

        self.done += 1
        if self.progress is not None:
            self.progress(self.done, self.total)
        return a, b


def compute(
    n: int,
    *,
    options: EngineOptions | None = None,
    executor: Executor | None = None,
    progress: ProgressFn | None = None,
) -> FibPair:
    """
    Return (F(n), F(n+1)) as gmpy2.mpz values.

    n must be a non-negative integer. Results are the same for every
    options/executor combination. If some level needs to split and no
    executor is given, a ThreadPoolExecutor of options.max_workers threads is
    created for this call and shut down before returning.

    progress(done, total) is called after every doubling step; total is
    n.bit_length().

    MemoryError from the underlying arithmetic is not caught.
    """
    n = operator.index(n)
    if n < 0:
        raise ValueError(f"Fibonacci index must be non-negative, got {n}")
    opts = options or EngineOptions()

    if executor is not None:
        pool_cm = nullcontext(executor)
    elif _will_split(n, opts.threshold_bits):
        pool_cm = ThreadPoolExecutor(max_workers=opts.max_workers, thread_name_prefix="fastfib")
    else:
        pool_cm = nullcontext(None)

    with pool_cm as pool:
        return _Doubler(opts.threshold_bits, pool, progress, recursion_depth(n)).pair(n)


def fib(n: int, **kwargs) -> gmpy2.mpz:
    """F(n); keyword arguments are passed to compute()."""
    return compute(n, **kwargs)[0]
