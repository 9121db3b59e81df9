"""
controller.py

The refinement loop.

Starting from an initial (instance, solution) pair, each iteration mutates the
current instance with generated strategies, submits it to the oracle, and
either adopts the answer (at least one route) or reverts to the last
successful pair and retries once with the relaxed strategy set.  The run stops
on the first solution that passes every constraint, when the iteration budget
is spent, or on a fatal failure.

State is carried in an immutable ``RunState`` that every step replaces; the
controller holds no per-run mutable attributes.

States::

    INITIAL -> (ANALYZE -> STRATEGIZE -> SUBMIT)* -> SUCCESS
                                     |
                                     +-> DEGENERATE_RECOVERY -> RECOVERED | FAILED
    ... -> TERMINATED
"""

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from routebalance.analysis.constraints import ConstraintSet, ConstraintVerdict, check_solution
from routebalance.analysis.load import SolutionMetrics, analyze_solution
from routebalance.core_types import ProblemInstance, RouteSolution
from routebalance.errors import (
    ErrorCategory,
    OracleError,
    OracleProcessingFailure,
    OracleRejectedError,
    OracleSubmissionError,
    ValidationError,
)
from routebalance.interfaces import Clock, Oracle
from routebalance.mutation.modifier import apply_strategies, ensure_valid, modification_report
from routebalance.oracle.polling import DEFAULT_MAX_WAIT, DEFAULT_POLL_INTERVAL, wait_for_solution
from routebalance.refinement.selection import Candidate, select_best
from routebalance.strategy.generator import (
    DEFAULT_POLICY,
    StrategyPolicy,
    generate_relaxed_strategies,
    generate_strategies,
)
from routebalance.strategy.types import RefinementStrategy
from routebalance.utils.logging import (
    RouteBalanceLogger,
    log_detail,
    log_error,
    log_info,
    log_progress,
    log_success,
    log_warning,
)
from routebalance.utils.time_measurement import TimeRecorder

logger = RouteBalanceLogger.get_logger(__name__)

DEGENERATE = "degenerate"

ArtifactWriter = Callable[[int, ProblemInstance, RouteSolution, list[RefinementStrategy]], None]


class RunStatus(str, Enum):
    SUCCESS = "success"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    FAILED = "failed"


class Phase(str, Enum):
    INITIAL = "initial"
    ANALYZE = "analyze"
    STRATEGIZE = "strategize"
    SUBMIT = "submit"
    DEGENERATE_RECOVERY = "degenerate_recovery"
    RECOVERED = "recovered"
    RECOVERY_FAILED = "recovery_failed"
    TERMINATED = "terminated"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WorkingPoint:
    """An instance together with the solution the oracle produced for it."""

    iteration: int
    instance: ProblemInstance
    solution: RouteSolution
    metrics: SolutionMetrics
    verdict: ConstraintVerdict

    @property
    def acceptable(self) -> bool:
        return self.verdict.passed and not self.metrics.degenerate


@dataclass(frozen=True)
class IterationRecord:
    iteration: int
    metrics: SolutionMetrics
    verdict: ConstraintVerdict
    solution: RouteSolution
    instance: ProblemInstance
    strategies: tuple[RefinementStrategy, ...]
    timestamp: datetime
    relaxed: bool = False

    def to_row(self) -> dict:
        """One row of the iteration history table."""
        compliance = self.metrics.compliance
        distribution = self.metrics.distribution
        return {
            "iteration": self.iteration,
            "relaxed": self.relaxed,
            "timestamp": self.timestamp.isoformat(),
            "routes": self.metrics.route_count,
            "compliance_rate": compliance.compliance_rate if compliance else None,
            "routes_below_target": len(compliance.below_target) if compliance else None,
            "total_load_gap": compliance.total_load_gap if compliance else None,
            "average_load": distribution.mean if distribution else None,
            "balance_score": distribution.balance_score if distribution else None,
            "constraints_met": self.verdict.passed,
            "violations": len(self.verdict.violations),
            "strategies": len(self.strategies),
        }


@dataclass(frozen=True)
class AttemptFailure:
    """An attempt that produced no IterationRecord."""

    iteration: int
    stage: str  # "normal" or "recovery"
    category: str  # an ErrorCategory value, or "degenerate"
    message: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "iteration": self.iteration,
            "stage": self.stage,
            "category": self.category,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class RunState:
    phase: Phase
    iteration: int
    current: WorkingPoint
    initial: WorkingPoint
    last_successful: WorkingPoint | None = None
    best: Candidate | None = None
    records: tuple[IterationRecord, ...] = field(default_factory=tuple)
    failures: tuple[AttemptFailure, ...] = field(default_factory=tuple)
    status: RunStatus | None = None
    note: str = ""
    started_at: datetime = field(default_factory=_now)
    finished_at: datetime | None = None

    @property
    def terminated(self) -> bool:
        return self.phase is Phase.TERMINATED

    @property
    def total_attempts(self) -> int:
        return len(self.records) + len(self.failures)

    @property
    def last_successful_iteration(self) -> int:
        return self.last_successful.iteration if self.last_successful else 0


class _AttemptFailed(Exception):
    """Internal: an attempt ended without a usable oracle answer."""

    def __init__(self, failure: AttemptFailure, fatal: bool, recoverable: bool):
        super().__init__(failure.message)
        self.failure = failure
        self.fatal = fatal
        self.recoverable = recoverable


class RefinementController:
    """Drives the submit / analyze / decide loop against an ``Oracle``."""

    def __init__(
        self,
        oracle: Oracle,
        clock: Clock,
        constraints: ConstraintSet,
        max_iterations: int = 20,
        policy: StrategyPolicy = DEFAULT_POLICY,
        time_unit_seconds: int = 1,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: float = DEFAULT_MAX_WAIT,
        artifact_writer: ArtifactWriter | None = None,
        time_recorder: TimeRecorder | None = None,
        on_iteration: Callable[[RunState], None] | None = None,
    ):
        if constraints.min_load_per_route is None:
            raise ValueError("constraints.min_load_per_route is required.")
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive.")
        self.oracle = oracle
        self.clock = clock
        self.constraints = constraints
        self.target = constraints.min_load_per_route
        self.max_iterations = max_iterations
        self.policy = policy
        self.time_unit_seconds = time_unit_seconds
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.artifact_writer = artifact_writer
        self.time_recorder = time_recorder or TimeRecorder()
        self.on_iteration = on_iteration

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def run(self, instance: ProblemInstance, initial_solution: RouteSolution) -> RunState:
        """Refine ``initial_solution`` and return the terminal ``RunState``."""
        start = self._evaluate(0, instance, initial_solution)
        state = RunState(
            phase=Phase.INITIAL,
            iteration=0,
            current=start,
            initial=start,
            last_successful=None if start.metrics.degenerate else start,
        )
        if start.metrics.degenerate:
            log_warning("Initial solution has no routes")
        else:
            log_info(
                f"Initial analysis: {start.metrics.compliance_rate:.1f}% compliance "
                f"over {start.metrics.route_count} routes"
            )

        if start.acceptable:
            log_success("Solution already meets all constraints")
            state = dataclasses.replace(state, best=self._candidate(start))
            return self._terminate(state, RunStatus.SUCCESS)

        iteration = 1
        while iteration <= self.max_iterations:
            log_progress(f"Iteration {iteration}/{self.max_iterations}")
            state = dataclasses.replace(state, phase=Phase.ANALYZE, iteration=iteration)
            state = self._iterate(state, iteration)
            if self.on_iteration is not None:
                self.on_iteration(state)
            if state.terminated:
                return state
            if state.current.acceptable:
                log_success(f"All constraints met at iteration {iteration}")
                return self._terminate(state, RunStatus.SUCCESS)
            iteration += 1

        log_warning(f"Reached maximum iterations ({self.max_iterations})")
        return self._terminate(
            state,
            RunStatus.MAX_ITERATIONS_REACHED,
            note=f"Reached maximum iterations ({self.max_iterations}) without meeting all constraints",
        )

    # ------------------------------------------------------------------
    # One iteration
    # ------------------------------------------------------------------

    def _iterate(self, state: RunState, iteration: int) -> RunState:
        current = state.current
        state = dataclasses.replace(state, phase=Phase.STRATEGIZE)
        strategies = generate_strategies(
            current.metrics, iteration, state.last_successful_iteration, self.policy
        )
        log_detail(f"{len(strategies)} strategies: " + ", ".join(s.kind for s in strategies))

        state = dataclasses.replace(state, phase=Phase.SUBMIT)
        try:
            mutated, solution = self._attempt(current.instance, strategies, iteration, "normal")
        except _AttemptFailed as exc:
            state = self._record_failure(state, exc.failure)
            if exc.fatal:
                return self._terminate(state, RunStatus.FAILED, note=exc.failure.message)
            if not exc.recoverable:
                return state
            return self._recover(state, iteration)

        point = self._evaluate(iteration, mutated, solution)
        if not point.metrics.degenerate:
            log_success(f"Successful iteration {iteration} with {point.metrics.route_count} routes")
            return self._adopt(state, point, strategies, relaxed=False)

        state = self._record_failure(
            state,
            AttemptFailure(
                iteration=iteration,
                stage="normal",
                category=DEGENERATE,
                message=f"Iteration {iteration} produced no routes",
                timestamp=_now(),
            ),
        )
        return self._recover(state, iteration)

    def _recover(self, state: RunState, iteration: int) -> RunState:
        anchor = state.last_successful
        if anchor is None:
            log_error("No successful iteration to revert to - stopping optimization")
            return self._terminate(
                state,
                RunStatus.FAILED,
                note="Degenerate result with no prior successful iteration to revert to",
            )

        log_warning(
            f"Iteration {iteration} failed - reverting to iteration {anchor.iteration} "
            "and retrying with relaxed strategies"
        )
        state = dataclasses.replace(state, phase=Phase.DEGENERATE_RECOVERY, current=anchor)
        strategies = generate_relaxed_strategies(
            anchor.metrics, iteration, anchor.iteration, self.policy
        )
        try:
            mutated, solution = self._attempt(anchor.instance, strategies, iteration, "recovery")
        except _AttemptFailed as exc:
            state = self._record_failure(state, exc.failure)
            if exc.fatal:
                return self._terminate(state, RunStatus.FAILED, note=exc.failure.message)
            return dataclasses.replace(state, phase=Phase.RECOVERY_FAILED)

        point = self._evaluate(iteration, mutated, solution)
        if point.metrics.degenerate:
            log_error(f"Relaxed iteration {iteration} also produced no routes")
            state = self._record_failure(
                state,
                AttemptFailure(
                    iteration=iteration,
                    stage="recovery",
                    category=DEGENERATE,
                    message=f"Relaxed iteration {iteration} produced no routes",
                    timestamp=_now(),
                ),
            )
            return dataclasses.replace(state, phase=Phase.RECOVERY_FAILED)

        log_success(
            f"Relaxed iteration {iteration} successful with {point.metrics.route_count} routes"
        )
        state = self._adopt(state, point, strategies, relaxed=True)
        return dataclasses.replace(state, phase=Phase.RECOVERED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attempt(
        self,
        instance: ProblemInstance,
        strategies: list[RefinementStrategy],
        iteration: int,
        stage: str,
    ) -> tuple[ProblemInstance, RouteSolution]:
        """Mutate, validate and submit; failures become ``_AttemptFailed``."""

        def failure(category: str, exc: Exception) -> AttemptFailure:
            return AttemptFailure(
                iteration=iteration,
                stage=stage,
                category=category,
                message=str(exc),
                timestamp=_now(),
            )

        try:
            mutated = ensure_valid(
                apply_strategies(instance, strategies, self.time_unit_seconds)
            )
            vehicles = modification_report(instance, mutated, strategies)["changes"]["vehicles"]
            log_detail(
                f"Submitting {vehicles['modified']} vehicles ({vehicles['added']} added)"
            )
            with self.time_recorder.measure(f"iteration_{iteration}_{stage}"):
                solution = wait_for_solution(
                    self.oracle, mutated, self.clock, self.poll_interval, self.max_wait
                )
        except ValidationError as exc:
            log_error(f"Iteration {iteration}: {exc}")
            raise _AttemptFailed(failure(ErrorCategory.VALIDATION.value, exc), fatal=False, recoverable=False) from exc
        except OracleRejectedError as exc:
            log_error(f"Iteration {iteration}: oracle rejected the request: {exc}")
            raise _AttemptFailed(failure(exc.category.value, exc), fatal=False, recoverable=False) from exc
        except OracleProcessingFailure as exc:
            log_error(f"Iteration {iteration}: {exc}")
            raise _AttemptFailed(failure(exc.category.value, exc), fatal=False, recoverable=True) from exc
        except OracleSubmissionError as exc:
            log_error(f"Iteration {iteration}: submission failed: {exc}")
            raise _AttemptFailed(failure(exc.category.value, exc), fatal=True, recoverable=False) from exc
        except OracleError as exc:
            log_error(f"Iteration {iteration}: oracle error: {exc}")
            raise _AttemptFailed(failure(exc.category.value, exc), fatal=False, recoverable=False) from exc
        return mutated, solution

    def _evaluate(
        self, iteration: int, instance: ProblemInstance, solution: RouteSolution
    ) -> WorkingPoint:
        return WorkingPoint(
            iteration=iteration,
            instance=instance,
            solution=solution,
            metrics=analyze_solution(solution, self.target, instance.capacity_by_vehicle()),
            verdict=check_solution(solution, self.constraints),
        )

    @staticmethod
    def _candidate(point: WorkingPoint, relaxed: bool = False) -> Candidate:
        return Candidate(
            iteration=point.iteration,
            solution=point.solution,
            metrics=point.metrics,
            verdict=point.verdict,
            relaxed=relaxed,
        )

    def _adopt(
        self,
        state: RunState,
        point: WorkingPoint,
        strategies: list[RefinementStrategy],
        relaxed: bool,
    ) -> RunState:
        record = IterationRecord(
            iteration=point.iteration,
            metrics=point.metrics,
            verdict=point.verdict,
            solution=point.solution,
            instance=point.instance,
            strategies=tuple(strategies),
            timestamp=_now(),
            relaxed=relaxed,
        )
        best = select_best(state.best, self._candidate(point, relaxed))
        if best is not state.best:
            log_success(
                f"New best solution at iteration {point.iteration}"
                + (" (relaxed)" if relaxed else "")
            )
        if self.artifact_writer is not None:
            self.artifact_writer(point.iteration, point.instance, point.solution, strategies)
        return dataclasses.replace(
            state,
            current=point,
            last_successful=point,
            best=best,
            records=state.records + (record,),
        )

    @staticmethod
    def _record_failure(state: RunState, failure: AttemptFailure) -> RunState:
        logger.debug(
            f"Attempt failure at iteration {failure.iteration} ({failure.stage}): {failure.category}"
        )
        return dataclasses.replace(state, failures=state.failures + (failure,))

    @staticmethod
    def _terminate(state: RunState, status: RunStatus, note: str = "") -> RunState:
        return dataclasses.replace(
            state,
            phase=Phase.TERMINATED,
            status=status,
            note=note or state.note,
            finished_at=_now(),
        )
