"""Oracle backends and the submit-and-wait loop.

Importing this package registers the ``nextbillion`` and ``mock`` backends in
``routebalance.registry.ORACLE_REGISTRY``.
"""

from routebalance.config.params import OracleParams
from routebalance.interfaces import Clock, Oracle
from routebalance.registry import ORACLE_REGISTRY

from .client import NextBillionOracle, classify_response
from .clock import RateGate, SystemClock
from .mock import MockOracle, build_mock_solution
from .polling import wait_for_solution

__all__ = [
    "MockOracle",
    "NextBillionOracle",
    "RateGate",
    "SystemClock",
    "build_mock_solution",
    "classify_response",
    "create_oracle",
    "wait_for_solution",
]


def create_oracle(params: OracleParams, clock: Clock) -> Oracle:
    """Instantiate the backend named by ``params.backend``."""
    try:
        oracle_cls = ORACLE_REGISTRY[params.backend]
    except KeyError:
        available = ", ".join(sorted(ORACLE_REGISTRY))
        raise ValueError(
            f"Unknown oracle backend '{params.backend}'. Available: {available}"
        ) from None

    if oracle_cls is MockOracle:
        return MockOracle()
    if not params.api_key:
        raise ValueError(
            "NEXTBILLION_API_KEY environment variable is required (or use --mock)."
        )
    return oracle_cls(
        api_key=params.api_key,
        base_url=params.base_url,
        clock=clock,
        min_call_interval=params.min_call_interval,
        max_retries=params.max_retries,
        retry_delay=params.retry_delay,
        request_timeout=params.request_timeout,
    )
