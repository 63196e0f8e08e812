"""Transfer progress tracking and display callbacks."""

from __future__ import annotations

import sys
import time
from typing import Callable, Optional, TextIO

ProgressCallback = Callable[[int, int], None]

_BAR_WIDTH = 48


def gettime() -> float:
    """Current wall-clock time in seconds."""
    return time.time()


def rate(transferred: float, elapsed: float) -> float:
    """Transfer rate in bytes per second, or 0 if no time has elapsed."""
    if elapsed > 0:
        return transferred / elapsed
    return 0.0


def estimate(remaining: float, rate: float) -> float:
    """Seconds left at the given rate, or 0 if the rate is not positive."""
    if rate > 0:
        return remaining / rate
    return 0.0


def format_eta(remaining: float) -> str:
    """Format a remaining time in seconds as ``MM:SS``, or ``--:--`` if out of range."""
    try:
        seconds = int(remaining + 0.5)
    except (OverflowError, ValueError):
        return "--:--"
    if 0 <= seconds < 6000:
        return "%02d:%02d" % divmod(seconds, 60)
    return "--:--"


def kilo(value: float) -> float:
    """Value in SI kilo units."""
    return value / 1000.0


def kibi(value: float) -> float:
    """Value in binary kibi units."""
    return value / 1024.0


class Progress:
    """Tracks the progress of a transfer and reports it to a callback."""

    def __init__(self, out: Optional[TextIO] = None,
                 clock: Callable[[], float] = gettime) -> None:
        self._out = out
        self._clock = clock
        self.callback: Optional[ProgressCallback] = None
        self.total = 0
        self.done = 0
        self.started_at: Optional[float] = None

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def start(self, callback: Optional[ProgressCallback], expected_total: int) -> None:
        """Begin a new transfer of ``expected_total`` bytes."""
        self.callback = callback
        self.total = expected_total
        self.done = 0
        self.started_at = self._clock()

    def update(self, bytes_done: int) -> None:
        """Account for ``bytes_done`` more bytes and notify the callback."""
        self.done += bytes_done
        if self.callback is not None:
            self.callback(self.total, self.done)

    def elapsed(self) -> float:
        """Seconds since :meth:`start`, or 0 if not started."""
        if self.started_at is None:
            return 0.0
        return self._clock() - self.started_at

    def bar(self, total: int, done: int) -> None:
        """Callback drawing a single-line progress bar."""
        ratio = done / total if total > 0 else 0.0
        pos = int(_BAR_WIDTH * ratio)
        speed = rate(done, self.elapsed())
        eta = estimate(total - done, speed)

        out = self.out
        out.write("\r%3.0f%% [" % (ratio * 100))
        out.write("=" * pos)
        out.write(" " * (_BAR_WIDTH - pos))
        if done < total:
            out.write("]%6.1f kB/s, ETA %s " % (kilo(speed), format_eta(eta)))
        else:
            out.write("] %5.0f kB, %6.1f kB/s\n" % (kilo(done), kilo(speed)))
        out.flush()

    def gauge(self, total: int, done: int) -> None:
        """Callback printing one percentage per line, for a gauge dialog."""
        if total > 0:
            self.out.write("%.0f\n" % (done / total * 100))
            self.out.flush()

    def gauge_xxx(self, total: int, done: int) -> None:
        """Callback printing percentage plus a caption in ``XXX`` blocks."""
        if total <= 0:
            return
        speed = rate(done, self.elapsed())
        eta = estimate(total - done, speed)
        out = self.out
        out.write("XXX\n")
        out.write("%.0f\n" % (done / total * 100))
        if done < total:
            out.write("%d of %d, %.1f kB/s, ETA %s\n"
                      % (done, total, kilo(speed), format_eta(eta)))
        else:
            out.write("Done: %.1f kB, at %.1f kB/s\n" % (kilo(done), kilo(speed)))
        out.write("XXX\n")
        out.flush()