"""Submit-and-wait loop on top of any ``Oracle``."""

from routebalance.core_types import OracleStatus, ProblemInstance, RouteSolution
from routebalance.errors import ErrorCategory, OracleProcessingFailure, OracleTimeoutError
from routebalance.interfaces import Clock, Oracle
from routebalance.utils.logging import RouteBalanceLogger, log_detail

logger = RouteBalanceLogger.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_MAX_WAIT = 600.0


def wait_for_solution(
    oracle: Oracle,
    instance: ProblemInstance,
    clock: Clock,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_wait: float = DEFAULT_MAX_WAIT,
) -> RouteSolution:
    """Submit ``instance`` and block until the oracle settles.

    Raises:
        OracleProcessingFailure: the oracle reported the job failed or cancelled.
        OracleTimeoutError: still processing after ``max_wait`` seconds.
        OracleSubmissionError: transient faults outlived the oracle's retries.
        OracleRejectedError: the oracle refused the request.
    """
    handle = oracle.submit(instance)
    started = clock.monotonic()
    polls = 0

    while True:
        polls += 1
        status = oracle.poll_status(handle)

        if status is OracleStatus.COMPLETED:
            logger.debug(f"Request {handle.request_id} completed after {polls} polls")
            return oracle.fetch_result(handle)
        if status is OracleStatus.FAILED:
            raise OracleProcessingFailure(
                f"Optimization {handle.request_id} failed", ErrorCategory.PROCESSING
            )
        if status is OracleStatus.CANCELLED:
            raise OracleProcessingFailure(
                f"Optimization {handle.request_id} was cancelled", ErrorCategory.CANCELLED
            )

        elapsed = clock.monotonic() - started
        if elapsed >= max_wait:
            raise OracleTimeoutError(
                f"Optimization {handle.request_id} timed out after {max_wait:g} seconds"
            )
        log_detail(f"Still processing ({elapsed:.0f}s elapsed), polling again")
        clock.sleep(poll_interval)
