from __future__ import annotations

"""Utilities for loading routebalance configuration YAML files into the
parameter dataclass hierarchy.

Each top-level section (``target``, ``refinement``, ``oracle``, ``io``) maps
onto one dataclass.  Keys are popped as they are consumed; anything left over
is reported as an error so that typos never pass silently.
"""

from dataclasses import fields
from importlib import resources
from pathlib import Path
from typing import Any, Dict

import yaml

from routebalance.utils.logging import RouteBalanceLogger

from .params import (
    IOParams,
    OracleParams,
    RefinementParams,
    RouteBalanceParams,
    TargetParams,
)

logger = RouteBalanceLogger.get_logger(__name__)

DEFAULT_CONFIG_NAME = "default_config.yaml"

# ---------------------------------------------------------------------------
# Helper parsing routines
# ---------------------------------------------------------------------------


def _pop_section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.pop(name, {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping.")
    return dict(section)


def _reject_unknown(section: Dict[str, Any], name: str) -> None:
    if section:
        unknown_keys = ", ".join(sorted(section.keys()))
        raise ValueError(f"Unknown keys in '{name}' section: {unknown_keys}")


def _parse_target(raw: Dict[str, Any]) -> TargetParams:
    defaults = TargetParams()
    target = TargetParams(
        min_load=raw.pop("min_load", defaults.min_load),
        max_load_per_route=raw.pop("max_load_per_route", None),
        max_routes=raw.pop("max_routes", None),
        max_distance=raw.pop("max_distance", None),
        max_duration=raw.pop("max_duration", None),
    )
    _reject_unknown(raw, "target")
    return target


def _parse_refinement(raw: Dict[str, Any]) -> RefinementParams:
    defaults = RefinementParams()
    window = raw.pop("default_vehicle_time_window", defaults.default_vehicle_time_window)
    if not isinstance(window, (list, tuple)) or len(window) != 2:
        raise ValueError("refinement.default_vehicle_time_window must be [start, end].")
    refinement = RefinementParams(
        max_iterations=raw.pop("max_iterations", defaults.max_iterations),
        time_unit_seconds=raw.pop("time_unit_seconds", defaults.time_unit_seconds),
        default_vehicle_time_window=(int(window[0]), int(window[1])),
        include_load_constraint=raw.pop(
            "include_load_constraint", defaults.include_load_constraint
        ),
    )
    _reject_unknown(raw, "refinement")
    return refinement


def _parse_oracle(raw: Dict[str, Any]) -> OracleParams:
    if "api_key" in raw:
        raise ValueError(
            "API keys are not read from YAML; set the NEXTBILLION_API_KEY environment variable."
        )
    names = [f.name for f in fields(OracleParams) if f.name != "api_key"]
    kwargs = {
        name: raw.pop(name)
        for name in names
        if name in raw
    }
    _reject_unknown(raw, "oracle")
    return OracleParams(**kwargs)


def _parse_io(raw: Dict[str, Any]) -> IOParams:
    io_params = IOParams(
        input_file=raw.pop("input_file", None),
        solution_file=raw.pop("solution_file", None),
        results_dir=Path(raw.pop("results_dir", "output")),
        format=raw.pop("format", "json"),
        clean=raw.pop("clean", False),
    )
    _reject_unknown(raw, "io")
    return io_params


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config_path() -> Path:
    return Path(str(resources.files("routebalance.config").joinpath(DEFAULT_CONFIG_NAME)))


def load_yaml(path: str | Path | None = None) -> RouteBalanceParams:
    """Load a YAML configuration file into `RouteBalanceParams`.

    Without ``path`` the packaged ``default_config.yaml`` is used.
    """

    cfg_path = Path(path) if path is not None else default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(cfg_path)

    try:
        with cfg_path.open() as f:
            data: Dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(
            f"Error parsing YAML configuration {cfg_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"YAML configuration {cfg_path} must be a mapping.")

    target = _parse_target(_pop_section(data, "target"))
    refinement = _parse_refinement(_pop_section(data, "refinement"))
    oracle = _parse_oracle(_pop_section(data, "oracle"))
    io_params = _parse_io(_pop_section(data, "io"))

    # Any remaining unknown keys will raise an error to avoid silent mistakes.
    if data:
        unknown_keys = ", ".join(sorted(data.keys()))
        raise ValueError(
            f"Unknown top-level configuration keys in YAML: {unknown_keys}"
        )

    logger.debug(
        "Loaded configuration: target: %s refinement: %s oracle backend: %s io: %s",
        target,
        refinement,
        oracle.backend,
        io_params,
    )

    return RouteBalanceParams(
        target=target, refinement=refinement, oracle=oracle, io=io_params
    )
