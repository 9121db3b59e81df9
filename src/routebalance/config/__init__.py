"""Configuration module for routebalance parameters."""

from .loader import load_yaml as load_routebalance_params
from .params import (
    IOParams,
    OracleParams,
    RefinementParams,
    RouteBalanceParams,
    RuntimeParams,
    TargetParams,
)

__all__ = [
    "TargetParams",
    "RefinementParams",
    "OracleParams",
    "IOParams",
    "RuntimeParams",
    "RouteBalanceParams",
    "load_routebalance_params",
]
