from __future__ import annotations

"""Parameter container dataclasses for routebalance.

Parameters are grouped by concern: what counts as an acceptable solution
(``TargetParams``), how the refinement loop behaves (``RefinementParams``),
how the oracle is reached (``OracleParams``) and where inputs and artifacts
live (``IOParams``).  A small mutable ``RuntimeParams`` bucket captures flags
that are never serialised to YAML.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from routebalance.analysis.constraints import ConstraintSet
from routebalance.strategy.generator import DEFAULT_VEHICLE_TIME_WINDOW, StrategyPolicy

__all__ = [
    "TargetParams",
    "RefinementParams",
    "OracleParams",
    "IOParams",
    "RuntimeParams",
    "RouteBalanceParams",
]

API_KEY_ENV = "NEXTBILLION_API_KEY"
API_URL_ENV = "NEXTBILLION_API_URL"


# ---------------------------------------------------------------------------
# Target: what an acceptable solution looks like
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TargetParams:
    """Minimum route load plus optional upper bounds checked on every solution."""

    min_load: float = 12000
    max_load_per_route: float | None = None
    max_routes: int | None = None
    max_distance: float | None = None
    max_duration: float | None = None

    def __post_init__(self):  # type: ignore[override]
        if self.min_load <= 0:
            raise ValueError("TargetParams.min_load must be positive.")
        if self.max_load_per_route is not None and self.max_load_per_route < self.min_load:
            raise ValueError(
                "TargetParams.max_load_per_route cannot be below min_load."
            )

    def constraint_set(self) -> ConstraintSet:
        return ConstraintSet(
            min_load_per_route=self.min_load,
            max_load_per_route=self.max_load_per_route,
            max_routes=self.max_routes,
            max_distance=self.max_distance,
            max_duration=self.max_duration,
        )


# ---------------------------------------------------------------------------
# Refinement loop
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RefinementParams:
    max_iterations: int = 20
    time_unit_seconds: int = 1
    default_vehicle_time_window: tuple[int, int] = DEFAULT_VEHICLE_TIME_WINDOW
    include_load_constraint: bool = False

    def __post_init__(self):  # type: ignore[override]
        if self.max_iterations <= 0:
            raise ValueError("RefinementParams.max_iterations must be positive.")
        if self.time_unit_seconds <= 0:
            raise ValueError("RefinementParams.time_unit_seconds must be positive.")
        start, end = self.default_vehicle_time_window
        if start >= end:
            raise ValueError(
                "RefinementParams.default_vehicle_time_window start must precede end."
            )

    def strategy_policy(self) -> StrategyPolicy:
        return StrategyPolicy(
            default_time_window=tuple(self.default_vehicle_time_window),
            include_load_constraint=self.include_load_constraint,
        )


# ---------------------------------------------------------------------------
# Oracle access
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OracleParams:
    backend: str = "nextbillion"
    base_url: str = "https://api.nextbillion.io"
    api_key: str | None = None
    poll_interval: float = 10.0
    max_wait: float = 600.0
    min_call_interval: float = 1.0
    max_retries: int = 3
    retry_delay: float = 1.0
    request_timeout: float = 300.0

    def __post_init__(self):  # type: ignore[override]
        # Credentials never live in YAML; the environment fills them in.
        if self.api_key is None and os.environ.get(API_KEY_ENV):
            object.__setattr__(self, "api_key", os.environ[API_KEY_ENV])
        if os.environ.get(API_URL_ENV):
            object.__setattr__(self, "base_url", os.environ[API_URL_ENV])

        for field_name in (
            "poll_interval",
            "max_wait",
            "min_call_interval",
            "retry_delay",
            "request_timeout",
        ):
            if getattr(self, field_name) < 0:
                raise ValueError(f"OracleParams.{field_name} must be non-negative.")
        if self.max_retries < 1:
            raise ValueError("OracleParams.max_retries must be at least 1.")


# ---------------------------------------------------------------------------
# IO parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IOParams:
    """Settings for data input and output pathways."""

    input_file: str | None = None
    solution_file: str | None = None
    results_dir: Path = Path("output")
    format: str = "json"  # One of: xlsx, json, csv
    clean: bool = False

    def __post_init__(self):  # type: ignore[override]
        if self.format not in {"xlsx", "json", "csv"}:
            raise ValueError("IOParams.format must be 'xlsx', 'json' or 'csv'.")

        results_dir = Path(self.results_dir)
        if not results_dir.is_absolute():
            results_dir = (Path.cwd() / results_dir).resolve()
        object.__setattr__(self, "results_dir", results_dir)


# ---------------------------------------------------------------------------
# Runtime parameters: toggles that are never serialized to yaml
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RuntimeParams:
    verbose: bool = False
    debug: bool = False


# ---------------------------------------------------------------------------
# Aggregate container
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RouteBalanceParams:
    """Aggregate parameter object passed from the CLI/API into the run."""

    target: TargetParams = field(default_factory=TargetParams)
    refinement: RefinementParams = field(default_factory=RefinementParams)
    oracle: OracleParams = field(default_factory=OracleParams)
    io: IOParams = field(default_factory=IOParams)
    runtime: RuntimeParams = field(default_factory=RuntimeParams)
