# src/fastfib/progress.py
from __future__ import annotations

import sys
import time


class Progress:
    """Single-line spinner/bar; update() matches the engine's progress(done, total) callback."""

    def __init__(self, total: int = 1, *, enabled: bool = True, stream=None):
        self.total = max(1, int(total))
        self.enabled = enabled
        self.stream = stream or sys.stderr
        self.start = time.perf_counter()
        self.last_draw = 0.0
        self.spin = "|/-\\"
        self.i = 0

    def update(self, done: int, total: int | None = None, label: str = ""):
        THROTTLE = 0.05
        if not self.enabled:
            return
        if total is not None:
            self.total = max(1, int(total))
        now = time.perf_counter()
        # always draw the last step; throttle the rest to avoid flicker
        if done < self.total and now - self.last_draw < THROTTLE:
            return
        self.last_draw = now
        self.i = (self.i + 1) % len(self.spin)
        frac = min(max(done / self.total, 0.0), 1.0)
        pct = int(frac * 100)
        bar_len = 24
        fill = int(frac * bar_len)
        bar = "#" * fill + "-" * (bar_len - fill)
        label = label or f"level {done}/{self.total}"
        msg = f"\r[{self.spin[self.i]}] [{bar}] {pct:3d}%  {label[:50]}"
        self.stream.write(msg)
        self.stream.flush()

    __call__ = update

    def done(self):
        if not self.enabled:
            return
        self.stream.write("\r" + " " * 80 + "\r")
        self.stream.flush()
