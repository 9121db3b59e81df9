"""Wall-clock and CPU time spans for the refinement run."""

import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass
class TimeMeasurement:
    """Timing figures captured for one named span."""

    span_name: str
    wall_time: float
    process_user_time: float
    process_system_time: float
    children_user_time: float
    children_system_time: float


class TimeRecorder:
    """Collects ``TimeMeasurement`` entries in completion order."""

    def __init__(self) -> None:
        self.measurements: list[TimeMeasurement] = []

    @contextmanager
    def measure(self, span_name: str) -> Iterator[None]:
        start_wall = time.perf_counter()
        start_times = os.times()
        try:
            yield
        finally:
            end_wall = time.perf_counter()
            end_times = os.times()
            self.measurements.append(
                TimeMeasurement(
                    span_name=span_name,
                    wall_time=end_wall - start_wall,
                    process_user_time=end_times.user - start_times.user,
                    process_system_time=end_times.system - start_times.system,
                    children_user_time=end_times.children_user
                    - start_times.children_user,
                    children_system_time=end_times.children_system
                    - start_times.children_system,
                )
            )

    def total(self, prefix: str = "") -> float:
        """Sum of wall time over spans whose name starts with ``prefix``."""
        return sum(m.wall_time for m in self.measurements if m.span_name.startswith(prefix))
