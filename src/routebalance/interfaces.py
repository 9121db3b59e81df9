"""Protocol definitions for the pluggable collaborators of the refinement loop."""

from typing import Protocol

from routebalance.core_types import JobHandle, OracleStatus, ProblemInstance, RouteSolution


class Oracle(Protocol):
    """An optimization service that turns a problem instance into routes.

    ``poll_status`` returns ``OracleStatus.PROCESSING`` while the job is
    still running; that is not a failure.
    """

    def submit(self, instance: ProblemInstance) -> JobHandle:
        """Send ``instance`` for optimization. Returns a handle to poll."""
        ...

    def poll_status(self, handle: JobHandle) -> OracleStatus:
        ...

    def fetch_result(self, handle: JobHandle) -> RouteSolution:
        """Return the solution of a completed job."""
        ...


class Clock(Protocol):
    """Time source used for polling, backoff and rate limiting."""

    def monotonic(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...
