"""Scenario tests for the refinement loop against a scripted oracle."""

from unittest.mock import MagicMock

import pytest
import requests

from routebalance.analysis.constraints import ConstraintSet
from routebalance.core_types import RouteSolution
from routebalance.errors import (
    ErrorCategory,
    OracleError,
    OracleProcessingFailure,
    OracleRejectedError,
    OracleSubmissionError,
)
from routebalance.oracle import NextBillionOracle
from routebalance.refinement import Phase, RefinementController, RunStatus
from routebalance.strategy import Objective, objective_descriptor
from routebalance.utils.time_measurement import TimeRecorder

DEGENERATE = RouteSolution(routes=(), unassigned=(101, 102))
CONSTRAINTS = ConstraintSet(min_load_per_route=12000)


@pytest.fixture
def controller_for(fake_clock):
    def _build(oracle, max_iterations=5, **kwargs):
        return RefinementController(
            oracle=oracle,
            clock=fake_clock,
            constraints=CONSTRAINTS,
            max_iterations=max_iterations,
            **kwargs,
        )

    return _build


def test_initial_solution_already_compliant(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([])
    state = controller_for(oracle).run(make_instance(), make_solution([13000, 14000]))

    assert state.status is RunStatus.SUCCESS
    assert state.phase is Phase.TERMINATED
    assert state.best.iteration == 0
    assert state.records == ()
    assert oracle.submitted == []


def test_degenerate_iteration_reverts_to_initial_and_relaxes(
    controller_for, scripted_oracle, make_instance, make_solution
):
    instance = make_instance(n_vehicles=3)
    oracle = scripted_oracle([DEGENERATE, make_solution([13000, 12500])])

    state = controller_for(oracle).run(instance, make_solution([14000, 9000]))

    assert state.status is RunStatus.SUCCESS
    assert state.iteration == 1
    assert len(oracle.submitted) == 2

    normal, relaxed = oracle.submitted
    # normal set: +2 vehicles on top of the initial instance
    assert len(normal.vehicles) == 5
    # relaxed set rebuilt from the iteration-0 instance: +6 vehicles
    assert [v.id for v in relaxed.vehicles] == list(range(1, 10))
    assert relaxed.constraint["max_vehicle_overtime"] == 7200
    assert relaxed.objective == objective_descriptor(
        Objective.MINIMIZE_VEHICLES_WITH_LOAD_CONSTRAINT
    )
    assert relaxed.vehicles[0].time_window[0] == instance.vehicles[0].time_window[0] - 3600

    assert [(f.iteration, f.stage, f.category) for f in state.failures] == [
        (1, "normal", "degenerate")
    ]
    assert len(state.records) == 1
    assert state.records[0].relaxed
    assert state.best.iteration == 1
    assert state.best.relaxed


def test_max_iterations_without_compliance(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([make_solution([14000, 9000]) for _ in range(5)])

    state = controller_for(oracle, max_iterations=5).run(
        make_instance(), make_solution([14000, 9000])
    )

    assert state.status is RunStatus.MAX_ITERATIONS_REACHED
    assert "Reached maximum iterations (5)" in state.note
    assert len(oracle.submitted) == 5
    assert [r.iteration for r in state.records] == [1, 2, 3, 4, 5]
    assert not any(r.relaxed for r in state.records)
    # equal compliance and route count keeps the first
    assert state.best.iteration == 1
    # each iteration builds on the previous adopted instance
    assert len(state.records[4].instance.vehicles) > len(state.records[0].instance.vehicles)
    assert state.records[0].instance is not state.records[1].instance


def test_rejections_advance_without_recovery(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([OracleRejectedError("bad request", 400) for _ in range(3)])

    state = controller_for(oracle, max_iterations=3).run(
        make_instance(), make_solution([9000, 9000])
    )

    assert state.status is RunStatus.MAX_ITERATIONS_REACHED
    assert state.best is None
    assert len(oracle.submitted) == 3
    assert [f.category for f in state.failures] == ["client"] * 3
    assert state.total_attempts == 3


def test_degenerate_without_prior_success_fails(controller_for, scripted_oracle, make_instance):
    oracle = scripted_oracle([DEGENERATE])

    state = controller_for(oracle).run(make_instance(), DEGENERATE)

    assert state.status is RunStatus.FAILED
    assert state.best is None
    assert state.note == "Degenerate result with no prior successful iteration to revert to"
    assert len(oracle.submitted) == 1


def test_submission_error_is_fatal(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([
        make_solution([14000, 9000]),
        OracleSubmissionError("network down", ErrorCategory.NETWORK),
    ])

    state = controller_for(oracle).run(make_instance(), make_solution([14000, 9000]))

    assert state.status is RunStatus.FAILED
    assert state.note == "network down"
    assert state.iteration == 2
    assert state.best.iteration == 1
    assert state.failures[-1].category == "network"


def test_processing_failure_triggers_recovery(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([
        OracleProcessingFailure("Optimization failed", ErrorCategory.PROCESSING),
        make_solution([12000, 15000]),
    ])

    state = controller_for(oracle).run(make_instance(), make_solution([14000, 9000]))

    assert state.status is RunStatus.SUCCESS
    assert state.failures[0].category == "processing"
    assert state.records[0].relaxed


def test_failed_recovery_moves_to_next_iteration(controller_for, scripted_oracle, make_instance, make_solution):
    instance = make_instance(n_vehicles=3)
    oracle = scripted_oracle([DEGENERATE, DEGENERATE, make_solution([13000, 13000])])

    state = controller_for(oracle, max_iterations=3).run(instance, make_solution([14000, 9000]))

    assert state.status is RunStatus.SUCCESS
    assert [(f.iteration, f.stage) for f in state.failures] == [(1, "normal"), (1, "recovery")]
    assert [(r.iteration, r.relaxed) for r in state.records] == [(2, False)]
    # iteration 2 starts again from the initial instance: ceil(3000 / 12000) + 2 vehicles
    assert len(oracle.submitted[2].vehicles) == 6


def test_validation_failure_never_submits(controller_for, scripted_oracle, instance_data, make_solution):
    from routebalance.core_types import ProblemInstance

    instance_data["vehicles"][1]["capacity"] = [0]
    oracle = scripted_oracle([])

    state = controller_for(oracle, max_iterations=2).run(
        ProblemInstance.from_dict(instance_data), make_solution([14000, 9000])
    )

    assert oracle.submitted == []
    assert [f.category for f in state.failures] == ["validation", "validation"]
    assert "Vehicle 2 has invalid capacity: 0" in state.failures[0].message
    assert state.status is RunStatus.MAX_ITERATIONS_REACHED


def test_artifacts_callbacks_and_timing(controller_for, scripted_oracle, make_instance, make_solution):
    writer = MagicMock()
    seen = []
    recorder = TimeRecorder()
    oracle = scripted_oracle([make_solution([14000, 9000]), make_solution([9000, 14000])])

    controller_for(
        oracle,
        max_iterations=2,
        artifact_writer=writer,
        on_iteration=lambda s: seen.append(s.iteration),
        time_recorder=recorder,
    ).run(make_instance(), make_solution([14000, 9000]))

    assert [c.args[0] for c in writer.call_args_list] == [1, 2]
    assert seen == [1, 2]
    assert [m.span_name for m in recorder.measurements] == [
        "iteration_1_normal",
        "iteration_2_normal",
    ]


def test_requires_min_load(fake_clock, scripted_oracle):
    with pytest.raises(ValueError, match="min_load_per_route"):
        RefinementController(scripted_oracle([]), fake_clock, ConstraintSet(max_routes=3))


def _http_oracle(fake_clock, **session_behaviour):
    session = MagicMock()
    for name, value in session_behaviour.items():
        setattr(session.request, name, value)
    return NextBillionOracle(api_key="k", clock=fake_clock, session=session), session


def test_non_json_body_is_recorded_and_recovered(controller_for, fake_clock, make_instance, make_solution):
    response = MagicMock(status_code=200, text="<html>")
    response.json.side_effect = ValueError("Expecting value")
    oracle, _ = _http_oracle(fake_clock, return_value=response)

    state = controller_for(oracle, max_iterations=1).run(
        make_instance(), make_solution([14000, 9000])
    )

    assert state.status is RunStatus.MAX_ITERATIONS_REACHED
    assert [(f.stage, f.category) for f in state.failures] == [
        ("normal", "processing"),
        ("recovery", "processing"),
    ]
    assert "invalid JSON" in state.failures[0].message


def test_broken_response_body_ends_run_with_report_state(
    controller_for, fake_clock, make_instance, make_solution
):
    oracle, session = _http_oracle(
        fake_clock, side_effect=requests.exceptions.ChunkedEncodingError("broken")
    )

    state = controller_for(oracle).run(make_instance(), make_solution([14000, 9000]))

    assert state.status is RunStatus.FAILED
    assert state.phase is Phase.TERMINATED
    assert session.request.call_count == 3
    assert [(f.iteration, f.category) for f in state.failures] == [(1, "network")]


def test_unclassified_oracle_error_is_recorded(controller_for, scripted_oracle, make_instance, make_solution):
    oracle = scripted_oracle([
        OracleError("unexpected answer", ErrorCategory.SERVER),
        make_solution([13000, 13000]),
    ])

    state = controller_for(oracle).run(make_instance(), make_solution([14000, 9000]))

    assert state.status is RunStatus.SUCCESS
    assert [(f.iteration, f.stage, f.category) for f in state.failures] == [
        (1, "normal", "server")
    ]
    assert [(r.iteration, r.relaxed) for r in state.records] == [(2, False)]
