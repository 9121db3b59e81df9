"""Registry for pluggable oracle backends."""

from routebalance.utils.logging import RouteBalanceLogger

from .interfaces import Oracle

logger = RouteBalanceLogger.get_logger(__name__)

ORACLE_REGISTRY: dict[str, type[Oracle]] = {}

__all__ = [
    "register_oracle",
    "ORACLE_REGISTRY",
]


def register_oracle(name: str):
    """Decorator to register an oracle implementation."""

    def decorator(cls: type[Oracle]):
        if name in ORACLE_REGISTRY:
            raise ValueError(f"Oracle '{name}' is already registered")
        ORACLE_REGISTRY[name] = cls
        logger.debug(f"Registered oracle backend '{name}'")
        return cls

    return decorator
