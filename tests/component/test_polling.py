import pytest

from routebalance.core_types import JobHandle, OracleStatus, RouteSolution
from routebalance.errors import (
    ErrorCategory,
    OracleProcessingFailure,
    OracleSubmissionError,
    OracleTimeoutError,
)
from routebalance.oracle import wait_for_solution


class StatusOracle:
    """Reports the scripted statuses in order, then repeats the last one."""

    def __init__(self, statuses, solution=None):
        self.statuses = list(statuses)
        self.solution = solution or RouteSolution(routes=())
        self.polls = 0

    def submit(self, instance):
        return JobHandle(request_id="job-1")

    def poll_status(self, handle):
        self.polls += 1
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def fetch_result(self, handle):
        return self.solution


def test_polls_until_completed(fake_clock, make_instance, make_solution):
    solution = make_solution([1000])
    oracle = StatusOracle(
        [OracleStatus.PROCESSING, OracleStatus.PROCESSING, OracleStatus.COMPLETED],
        solution,
    )

    result = wait_for_solution(oracle, make_instance(), fake_clock, poll_interval=10)

    assert result is solution
    assert oracle.polls == 3
    assert fake_clock.sleeps == [10, 10]


@pytest.mark.parametrize("status, category", [
    (OracleStatus.FAILED, ErrorCategory.PROCESSING),
    (OracleStatus.CANCELLED, ErrorCategory.CANCELLED),
])
def test_failed_and_cancelled(fake_clock, make_instance, status, category):
    oracle = StatusOracle([OracleStatus.PROCESSING, status])
    with pytest.raises(OracleProcessingFailure) as excinfo:
        wait_for_solution(oracle, make_instance(), fake_clock)
    assert excinfo.value.category is category


def test_timeout(fake_clock, make_instance):
    oracle = StatusOracle([OracleStatus.PROCESSING])

    with pytest.raises(OracleTimeoutError) as excinfo:
        wait_for_solution(oracle, make_instance(), fake_clock, poll_interval=10, max_wait=30)

    assert isinstance(excinfo.value, OracleSubmissionError)
    assert excinfo.value.category is ErrorCategory.TIMEOUT
    assert oracle.polls == 4
    assert fake_clock.sleeps == [10, 10, 10]


def test_degenerate_result_returned_not_raised(fake_clock, make_instance):
    oracle = StatusOracle([OracleStatus.COMPLETED])
    result = wait_for_solution(oracle, make_instance(), fake_clock)
    assert result.is_degenerate
