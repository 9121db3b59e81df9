"""routebalance: iterative load-balance refinement for vehicle routing."""

__version__ = "0.1.0"

# Main API
from .analysis import analyze_solution, check_solution
from .api import RefinementResult, analyze, refine

# Core types
from .config.params import RouteBalanceParams
from .core_types import (
    Job,
    JobHandle,
    OracleStatus,
    ProblemInstance,
    Route,
    RouteSolution,
    Step,
    Vehicle,
)
from .interfaces import Clock, Oracle
from .mutation import apply_strategies, validate_instance
from .refinement import RefinementController, build_final_report, select_best

# Extension system
from .registry import ORACLE_REGISTRY, register_oracle
from .strategy import generate_relaxed_strategies, generate_strategies

__all__ = [
    # Version
    "__version__",
    # Main API
    "refine",
    "analyze",
    "RefinementResult",
    # Stage functions
    "analyze_solution",
    "check_solution",
    "generate_strategies",
    "generate_relaxed_strategies",
    "apply_strategies",
    "validate_instance",
    "select_best",
    "build_final_report",
    "RefinementController",
    # Types
    "RouteBalanceParams",
    "ProblemInstance",
    "Vehicle",
    "Job",
    "Step",
    "Route",
    "RouteSolution",
    "JobHandle",
    "OracleStatus",
    # Extensions
    "Oracle",
    "Clock",
    "register_oracle",
    "ORACLE_REGISTRY",
]
