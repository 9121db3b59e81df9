"""The refinement loop, best-solution selection and the final report."""

from .controller import (
    AttemptFailure,
    IterationRecord,
    Phase,
    RefinementController,
    RunState,
    RunStatus,
    WorkingPoint,
)
from .report import FinalReport, ReportTag, build_final_report
from .selection import Candidate, is_better, select_best

__all__ = [
    "AttemptFailure",
    "Candidate",
    "FinalReport",
    "IterationRecord",
    "Phase",
    "RefinementController",
    "ReportTag",
    "RunState",
    "RunStatus",
    "WorkingPoint",
    "build_final_report",
    "is_better",
    "select_best",
]
