"""
Core data structures: the routing problem instance sent to the oracle and the
route solution it returns.

Both are frozen value objects built from (and serialised back to) the oracle's
JSON documents.  Fields the package does not interpret are carried in ``extra``
so that a round trip never loses information.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

VehicleId = str | int

_VEHICLE_KEYS = {"id", "capacity", "time_window", "metadata"}
_JOB_KEYS = {"id", "delivery", "time_windows"}
_OPTION_KEYS = {"objective", "constraint"}
_INSTANCE_KEYS = {"vehicles", "jobs", "locations", "options"}
_STEP_KEYS = {"type", "load", "job_id", "id"}
_ROUTE_KEYS = {"vehicle", "steps", "summary"}
_SOLUTION_KEYS = {"routes", "unassigned"}


def _window(raw: Any, owner: str) -> tuple[int, int]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValueError(f"{owner} missing or invalid time window: {raw!r}")
    return (raw[0], raw[1])


@dataclass(frozen=True)
class Vehicle:
    """A vehicle available to the oracle."""

    id: VehicleId
    capacity: tuple[float, ...]
    time_window: tuple[int, int]
    metadata: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def primary_capacity(self) -> float:
        return self.capacity[0] if self.capacity else 0

    @staticmethod
    def from_dict(data: dict[str, Any], index: int = 0) -> "Vehicle":
        if data.get("id") in (None, ""):
            raise ValueError(f"Vehicle at index {index} missing id")
        vehicle_id = data["id"]
        capacity = data.get("capacity")
        if not isinstance(capacity, (list, tuple)):
            raise ValueError(f"Vehicle {vehicle_id} missing or invalid capacity")
        return Vehicle(
            id=vehicle_id,
            capacity=tuple(capacity),
            time_window=_window(data.get("time_window"), f"Vehicle {vehicle_id}"),
            metadata=copy.deepcopy(data.get("metadata") or {}),
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _VEHICLE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "capacity": list(self.capacity),
            "time_window": list(self.time_window),
        }
        if self.metadata:
            data["metadata"] = copy.deepcopy(self.metadata)
        data.update(copy.deepcopy(self.extra))
        return data

    def clone(self) -> "Vehicle":
        return Vehicle(
            id=self.id,
            capacity=self.capacity,
            time_window=self.time_window,
            metadata=copy.deepcopy(self.metadata),
            extra=copy.deepcopy(self.extra),
        )


@dataclass(frozen=True)
class Job:
    """A delivery job with one or more alternative time windows."""

    id: str | int
    delivery: tuple[float, ...]
    time_windows: tuple[tuple[int, int], ...]
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def primary_delivery(self) -> float:
        return self.delivery[0] if self.delivery else 0

    @staticmethod
    def from_dict(data: dict[str, Any], index: int = 0) -> "Job":
        if data.get("id") in (None, ""):
            raise ValueError(f"Job at index {index} missing id")
        job_id = data["id"]
        delivery = data.get("delivery")
        if not isinstance(delivery, (list, tuple)):
            raise ValueError(f"Job {job_id} missing or invalid delivery")
        windows = data.get("time_windows")
        if not isinstance(windows, (list, tuple)):
            raise ValueError(f"Job {job_id} missing or invalid time_windows")
        return Job(
            id=job_id,
            delivery=tuple(delivery),
            time_windows=tuple(_window(w, f"Job {job_id}") for w in windows),
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _JOB_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "delivery": list(self.delivery),
            "time_windows": [list(w) for w in self.time_windows],
        }
        data.update(copy.deepcopy(self.extra))
        return data

    def clone(self) -> "Job":
        return Job(
            id=self.id,
            delivery=self.delivery,
            time_windows=self.time_windows,
            extra=copy.deepcopy(self.extra),
        )


@dataclass(frozen=True)
class ProblemInstance:
    """The full routing problem submitted to the oracle.

    Instances are never modified after creation.  ``clone()`` returns a copy
    that shares no mutable state with the original, which is what the input
    mutator builds on.
    """

    vehicles: tuple[Vehicle, ...]
    jobs: tuple[Job, ...]
    locations: dict[str, Any] = field(default_factory=dict)
    objective: dict[str, Any] = field(default_factory=dict)
    constraint: dict[str, Any] = field(default_factory=dict)
    options_extra: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ProblemInstance":
        """Parse an oracle request document.

        Raises:
            ValueError: if vehicles, jobs or locations are missing, or any
                vehicle/job lacks its id, capacity/delivery or time windows.
        """
        vehicles_raw = data.get("vehicles") or []
        jobs_raw = data.get("jobs") or []
        if not vehicles_raw:
            raise ValueError("No vehicles found in input data")
        if not jobs_raw:
            raise ValueError("No jobs found in input data")
        locations = data.get("locations") or {}
        if not locations:
            raise ValueError("No locations found in input data")

        options = data.get("options") or {}
        return ProblemInstance(
            vehicles=tuple(Vehicle.from_dict(v, i) for i, v in enumerate(vehicles_raw)),
            jobs=tuple(Job.from_dict(j, i) for i, j in enumerate(jobs_raw)),
            locations=copy.deepcopy(locations),
            objective=copy.deepcopy(options.get("objective") or {}),
            constraint=copy.deepcopy(options.get("constraint") or {}),
            options_extra={
                k: copy.deepcopy(v) for k, v in options.items() if k not in _OPTION_KEYS
            },
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _INSTANCE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        options: dict[str, Any] = copy.deepcopy(self.options_extra)
        if self.objective:
            options["objective"] = copy.deepcopy(self.objective)
        if self.constraint:
            options["constraint"] = copy.deepcopy(self.constraint)
        data: dict[str, Any] = {
            "vehicles": [v.to_dict() for v in self.vehicles],
            "jobs": [j.to_dict() for j in self.jobs],
            "locations": copy.deepcopy(self.locations),
            "options": options,
        }
        data.update(copy.deepcopy(self.extra))
        return data

    def capacity_by_vehicle(self) -> dict[VehicleId, float]:
        """First capacity component of every vehicle that declares one."""
        return {v.id: v.capacity[0] for v in self.vehicles if v.capacity}

    def clone(self) -> "ProblemInstance":
        return ProblemInstance(
            vehicles=tuple(v.clone() for v in self.vehicles),
            jobs=tuple(j.clone() for j in self.jobs),
            locations=copy.deepcopy(self.locations),
            objective=copy.deepcopy(self.objective),
            constraint=copy.deepcopy(self.constraint),
            options_extra=copy.deepcopy(self.options_extra),
            extra=copy.deepcopy(self.extra),
        )

    @property
    def total_capacity(self) -> float:
        return sum(v.primary_capacity for v in self.vehicles)

    @property
    def total_demand(self) -> float:
        return sum(j.primary_delivery for j in self.jobs)

    def summary(self) -> dict[str, float]:
        """Counts and capacity utilisation, as logged when an input is loaded."""
        vehicle_count = len(self.vehicles)
        job_count = len(self.jobs)
        total_capacity = self.total_capacity
        total_demand = self.total_demand
        return {
            "vehicle_count": vehicle_count,
            "job_count": job_count,
            "total_capacity": total_capacity,
            "total_demand": total_demand,
            "average_vehicle_capacity": total_capacity / vehicle_count if vehicle_count else 0.0,
            "average_job_size": total_demand / job_count if job_count else 0.0,
            "capacity_utilization": (total_demand / total_capacity) * 100
            if total_capacity
            else 0.0,
        }


@dataclass(frozen=True)
class Step:
    """One step of a route; only ``type == "job"`` steps carry deliverable load."""

    type: str
    load: tuple[float, ...] = ()
    job_id: str | int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if any(amount < 0 for amount in self.load):
            raise ValueError(f"Step load cannot be negative: {list(self.load)}")

    @property
    def is_job(self) -> bool:
        return self.type == "job"

    @property
    def amount(self) -> float:
        return self.load[0] if self.load else 0

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Step":
        job_id = data.get("job_id", data.get("id"))
        return Step(
            type=data.get("type", ""),
            load=tuple(data.get("load") or ()),
            job_id=job_id,
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _STEP_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.load:
            data["load"] = list(self.load)
        if self.job_id is not None:
            data["id"] = self.job_id
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class RouteSummary:
    distance: float = 0.0
    duration: float = 0.0


@dataclass(frozen=True)
class Route:
    vehicle: VehicleId
    steps: tuple[Step, ...]
    summary: RouteSummary = field(default_factory=RouteSummary)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def job_steps(self) -> tuple[Step, ...]:
        return tuple(step for step in self.steps if step.is_job)

    @staticmethod
    def from_dict(data: dict[str, Any], index: int = 0) -> "Route":
        if data.get("vehicle") in (None, ""):
            raise ValueError(f"Route at index {index} missing vehicle")
        steps = data.get("steps")
        if not isinstance(steps, list):
            raise ValueError(f"Route {data['vehicle']} missing or invalid steps")
        summary = data.get("summary") or {}
        return Route(
            vehicle=data["vehicle"],
            steps=tuple(Step.from_dict(s) for s in steps),
            summary=RouteSummary(
                distance=summary.get("distance", 0.0) or 0.0,
                duration=summary.get("duration", 0.0) or 0.0,
            ),
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _ROUTE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "vehicle": self.vehicle,
            "steps": [s.to_dict() for s in self.steps],
            "summary": {
                "distance": self.summary.distance,
                "duration": self.summary.duration,
            },
        }
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class RouteSolution:
    """Routes returned by the oracle plus the jobs it could not assign."""

    routes: tuple[Route, ...]
    unassigned: tuple[Any, ...] = ()
    summary: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        seen: set[VehicleId] = set()
        for route in self.routes:
            if route.vehicle in seen:
                raise ValueError(f"Vehicle {route.vehicle} appears in more than one route")
            seen.add(route.vehicle)

    @property
    def route_count(self) -> int:
        return len(self.routes)

    @property
    def is_degenerate(self) -> bool:
        return not self.routes

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RouteSolution":
        """Parse a solution document, unwrapping a top-level ``result`` key."""
        payload = data.get("result") or data
        routes = payload.get("routes") or []
        if not isinstance(routes, list):
            raise ValueError("Invalid routes array in solution")
        return RouteSolution(
            routes=tuple(Route.from_dict(r, i) for i, r in enumerate(routes)),
            unassigned=tuple(copy.deepcopy(payload.get("unassigned") or [])),
            summary=copy.deepcopy(payload.get("summary") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "routes": [r.to_dict() for r in self.routes],
            "unassigned": copy.deepcopy(list(self.unassigned)),
            "summary": copy.deepcopy(self.summary),
        }


class OracleStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class JobHandle:
    """Identifies a job submitted to an oracle.

    Some backends answer synchronously; the solution then travels with the
    handle and no polling is needed.
    """

    request_id: str
    immediate_result: RouteSolution | None = None
    message: str = ""
