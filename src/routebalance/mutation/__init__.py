"""Input mutation: turn refinement strategies into new problem instances."""

from .modifier import (
    apply_strategies,
    apply_strategy,
    ensure_valid,
    modification_report,
    validate_instance,
)

__all__ = [
    "apply_strategies",
    "apply_strategy",
    "ensure_valid",
    "modification_report",
    "validate_instance",
]
