"""
Tests for the progress aggregator.

Parcel completions accumulate into operation percent; the last operation to
reach 100 percent closes the sheet.
"""

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from fieldwork.domain.execution.entities import ExecutionOperation, ExecutionSheet
from fieldwork.domain.execution.services.progress_aggregator import (
    COMPLETION_EPSILON,
    ProgressAggregator,
    accumulate_percent,
    contribution_percent,
)
from fieldwork.domain.execution.value_objects import SheetKey
from fieldwork.domain.shared.exceptions import BusinessRuleViolation

T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
SHEET = SheetKey(worksheet_id=9)


def operation(code: str = "A", total_area_ha: float = 10.0) -> ExecutionOperation:
    return ExecutionOperation(sheet=SHEET, operation_code=code, total_area_ha=total_area_ha)


class TestContribution:
    """Test the share of one parcel."""

    def test_contribution(self):
        assert contribution_percent(6.0, 10.0) == pytest.approx(60.0)

    def test_zero_total_area_contributes_full(self):
        """Test an operation with nothing to cover completes on any parcel."""
        assert contribution_percent(3.0, 0.0) == 100.0

    def test_negative_area_rejected(self):
        with pytest.raises(BusinessRuleViolation):
            contribution_percent(-1.0, 10.0)

    def test_accumulate_caps_at_full(self):
        assert accumulate_percent(80.0, 50.0) == 100.0

    def test_accumulate_snaps_rounding_error(self):
        """Test sums a hair below 100 count as complete."""
        assert accumulate_percent(100.0 - COMPLETION_EPSILON / 2, 0.0) == 100.0
        assert accumulate_percent(99.0, 0.5) == 99.5


class TestProgressAggregator:
    """Test rolling parcel area up to operations and sheets."""

    def test_six_then_four_hectares(self):
        """Test 6 ha then 4 ha of a 10 ha operation reach 60 then 100 percent."""
        aggregator = ProgressAggregator()
        op = operation()

        first = aggregator.apply_parcel_completion(op, 6.0, T0)
        assert first.new_percent == pytest.approx(60.0)
        assert not first.operation_completed

        second = aggregator.apply_parcel_completion(op, 4.0, T0)
        assert second.old_percent == pytest.approx(60.0)
        assert second.new_percent == 100.0
        assert second.operation_completed
        assert op.end_time == T0

    def test_overshoot_is_capped(self):
        aggregator = ProgressAggregator()
        op = operation(total_area_ha=5.0)

        update = aggregator.apply_parcel_completion(op, 8.0, T0)

        assert update.contribution == pytest.approx(160.0)
        assert op.percent_complete == 100.0

    def test_tenths_sum_to_full(self):
        """Test ten parcels of 0.1 ha complete a 1 ha operation despite rounding."""
        aggregator = ProgressAggregator()
        op = operation(total_area_ha=1.0)

        for _ in range(10):
            aggregator.apply_parcel_completion(op, 0.1, T0)

        assert op.percent_complete == 100.0
        assert op.is_complete

    def test_sheet_completes_when_all_operations_full(self):
        aggregator = ProgressAggregator()
        sheet = ExecutionSheet(worksheet_id=9, operation_codes=["A", "B"])
        sheet.record_activity(T0)
        op_a, op_b = operation("A"), operation("B")

        aggregator.apply_parcel_completion(op_a, 10.0, T0)
        assert aggregator.complete_sheet_if_done(sheet, [op_a, op_b], T0) is False
        assert sheet.end_time is None

        aggregator.apply_parcel_completion(op_b, 10.0, T0)
        assert aggregator.complete_sheet_if_done(sheet, [op_a, op_b], T0) is True
        assert sheet.end_time == T0
        assert aggregator.complete_sheet_if_done(sheet, [op_a, op_b], T0) is False

    @settings(max_examples=50, deadline=None)
    @given(
        total=st.floats(min_value=0.0, max_value=500.0, allow_nan=False),
        areas=st.lists(
            st.floats(min_value=0.0, max_value=100.0, allow_nan=False), max_size=30
        ),
    )
    def test_percent_is_monotonic_and_bounded(self, total, areas):
        """Test accumulated percent never decreases and stays within 0..100."""
        aggregator = ProgressAggregator()
        op = operation(total_area_ha=total)
        completed = 0

        previous = op.percent_complete
        for area in areas:
            update = aggregator.apply_parcel_completion(op, area, T0)
            completed += update.operation_completed
            assert previous <= op.percent_complete <= 100.0
            previous = op.percent_complete

        assert completed <= 1
        assert op.is_valid()
