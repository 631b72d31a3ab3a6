"""
Progress Aggregator

Rolls completed parcel area up into operation percent and operation
completion up into sheet completion. Accumulation is incremental: every
completion adds its own share once, it never recomputes from scratch.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ...shared.exceptions import BusinessRuleViolation
from ..entities.execution_sheet import ExecutionSheet
from ..entities.operation import FULL_PERCENT, ExecutionOperation

# Accumulated floating point error below this snaps to 100
COMPLETION_EPSILON = 1e-9


def contribution_percent(area_ha: float, total_area_ha: float) -> float:
    """Share of an operation's total area covered by one parcel, in percent."""
    if area_ha < 0:
        raise BusinessRuleViolation("AREA_NON_NEGATIVE", "Parcel area cannot be negative")
    if total_area_ha <= 0:
        # Nothing to cover: any completion finishes the operation
        return FULL_PERCENT
    return area_ha * FULL_PERCENT / total_area_ha


def accumulate_percent(current: float, contribution: float) -> float:
    """Add a contribution to the current percent, capped at 100."""
    new_percent = min(FULL_PERCENT, current + contribution)
    if FULL_PERCENT - new_percent <= COMPLETION_EPSILON:
        new_percent = FULL_PERCENT
    return max(current, new_percent)


@dataclass(frozen=True)
class ProgressUpdate:
    """Outcome of applying one parcel completion to its operation."""

    area_ha: float
    contribution: float
    old_percent: float
    new_percent: float
    operation_completed: bool


class ProgressAggregator:
    """Applies parcel completions to operations and operations to sheets."""

    def apply_parcel_completion(
        self, operation: ExecutionOperation, area_ha: float, at: datetime
    ) -> ProgressUpdate:
        old_percent = operation.percent_complete
        contribution = contribution_percent(area_ha, operation.total_area_ha)
        new_percent = accumulate_percent(old_percent, contribution)
        completed = operation.apply_progress(new_percent, at)
        return ProgressUpdate(
            area_ha=area_ha,
            contribution=contribution,
            old_percent=old_percent,
            new_percent=new_percent,
            operation_completed=completed,
        )

    @staticmethod
    def all_operations_complete(operations: Iterable[ExecutionOperation]) -> bool:
        return all(op.percent_complete >= FULL_PERCENT for op in operations)

    def complete_sheet_if_done(
        self,
        sheet: ExecutionSheet,
        operations: Iterable[ExecutionOperation],
        at: datetime,
    ) -> bool:
        """
        Close the sheet when every operation is at 100 percent.

        Returns:
            True if this call set the sheet's end timestamp
        """
        if not self.all_operations_complete(operations):
            return False
        return sheet.complete(at)
