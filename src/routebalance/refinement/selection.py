"""Best-solution ordering.

Most preferred first:

1. any non-degenerate solution over a degenerate one (degenerate solutions are
   never selectable);
2. strictly higher compliance rate;
3. on equal compliance, fewer routes.

Anything else keeps the incumbent.
"""

from dataclasses import dataclass

from routebalance.analysis.constraints import ConstraintVerdict
from routebalance.analysis.load import SolutionMetrics
from routebalance.core_types import RouteSolution


@dataclass(frozen=True)
class Candidate:
    """A solution together with the analysis it was ranked by."""

    iteration: int
    solution: RouteSolution
    metrics: SolutionMetrics
    verdict: ConstraintVerdict
    relaxed: bool = False


def is_better(candidate: SolutionMetrics, incumbent: SolutionMetrics | None) -> bool:
    """True when ``candidate`` should replace ``incumbent``."""
    if candidate.degenerate or candidate.compliance_rate is None:
        return False
    if incumbent is None or incumbent.degenerate or incumbent.compliance_rate is None:
        return True
    if candidate.compliance_rate > incumbent.compliance_rate:
        return True
    if candidate.compliance_rate == incumbent.compliance_rate:
        return candidate.route_count < incumbent.route_count
    return False


def select_best(incumbent: Candidate | None, candidate: Candidate) -> Candidate | None:
    """Return whichever of ``incumbent`` and ``candidate`` ranks higher.

    The result is ``None`` only when there is no incumbent and the candidate
    is degenerate.
    """
    incumbent_metrics = incumbent.metrics if incumbent is not None else None
    return candidate if is_better(candidate.metrics, incumbent_metrics) else incumbent
