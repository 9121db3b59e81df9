"""Wall clock and client-side rate limiting."""

import time

from routebalance.interfaces import Clock


class SystemClock:
    """``Clock`` backed by :mod:`time`."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class RateGate:
    """Enforce a minimum spacing between consecutive oracle calls."""

    def __init__(self, min_interval: float, clock: Clock):
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative.")
        self.min_interval = min_interval
        self.clock = clock
        self._last_call: float | None = None

    def wait(self) -> float:
        """Block until a call is allowed; returns the time spent waiting."""
        waited = 0.0
        if self._last_call is not None:
            elapsed = self.clock.monotonic() - self._last_call
            if elapsed < self.min_interval:
                waited = self.min_interval - elapsed
                self.clock.sleep(waited)
        self._last_call = self.clock.monotonic()
        return waited
