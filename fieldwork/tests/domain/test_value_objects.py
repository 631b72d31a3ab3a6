"""
Unit tests for execution value objects.

Covers structured keys, caller identities, worksheet plans and the GeoJSON
polygon geometry.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from fieldwork.domain.execution.value_objects import (
    ActivityKey,
    Geometry,
    Identity,
    ParcelStatus,
    PlannedOperation,
    SheetKey,
    UserRole,
    WorksheetPlan,
)
from fieldwork.domain.shared.exceptions import GeometryError


class TestKeys:
    """Test composite entity keys."""

    def test_keys_nest_parent_keys(self):
        """Test each key carries the key of its parent."""
        sheet = SheetKey(worksheet_id=7)
        operation = sheet.operation("A")
        parcel = operation.parcel(101)
        activity = parcel.activity("abc")

        assert activity.parcel == parcel
        assert activity.operation == operation
        assert activity.sheet == sheet
        assert parcel.sheet == sheet

    def test_storage_ids_are_distinct_per_level(self):
        """Test storage ids render the full path of the entity."""
        parcel = SheetKey(worksheet_id=7).operation("A").parcel(101)

        assert str(parcel.sheet) == "sheet/7"
        assert str(parcel.operation) == "sheet/7/op/A"
        assert str(parcel) == "sheet/7/op/A/parcel/101"
        assert str(parcel.activity("abc")) == "sheet/7/op/A/parcel/101/activity/abc"

    def test_equal_keys_are_interchangeable(self):
        """Test keys compare and hash by value."""
        first = SheetKey(worksheet_id=1).operation("A").parcel(5)
        second = SheetKey(worksheet_id=1).operation("A").parcel(5)

        assert first == second
        assert len({first, second}) == 1

    def test_operation_code_is_stripped(self):
        """Test surrounding whitespace is removed from operation codes."""
        assert SheetKey(worksheet_id=1).operation("  A1 ").operation_code == "A1"

    @pytest.mark.parametrize("code", ["", "   ", "a/b"])
    def test_invalid_operation_code(self, code):
        """Test blank codes and codes containing the separator are rejected."""
        with pytest.raises(PydanticValidationError):
            SheetKey(worksheet_id=1).operation(code)

    def test_negative_worksheet_id_rejected(self):
        """Test worksheet ids cannot be negative."""
        with pytest.raises(PydanticValidationError):
            SheetKey(worksheet_id=-1)

    def test_activity_id_cannot_contain_separator(self):
        """Test activity ids cannot break the key path."""
        parcel = SheetKey(worksheet_id=1).operation("A").parcel(5)
        with pytest.raises(PydanticValidationError):
            ActivityKey(parcel=parcel, activity_id="x/y")


class TestParcelStatus:
    """Test parcel status helpers."""

    def test_forward_only_transitions(self):
        """Test status only moves one step forward."""
        assert ParcelStatus.UNASSIGNED.can_transition_to(ParcelStatus.ASSIGNED)
        assert ParcelStatus.ASSIGNED.can_transition_to(ParcelStatus.IN_PROGRESS)
        assert ParcelStatus.IN_PROGRESS.can_transition_to(ParcelStatus.COMPLETED)
        assert not ParcelStatus.IN_PROGRESS.can_transition_to(ParcelStatus.ASSIGNED)
        assert not ParcelStatus.UNASSIGNED.can_transition_to(ParcelStatus.COMPLETED)

    def test_completed_is_terminal(self):
        """Test completed parcels accept nothing."""
        assert ParcelStatus.COMPLETED.is_terminal
        assert not ParcelStatus.COMPLETED.accepts_work
        for status in ParcelStatus:
            assert not ParcelStatus.COMPLETED.can_transition_to(status)


class TestIdentity:
    """Test caller identity."""

    def test_field_operator_role(self):
        """Test only partner operators are field operators."""
        operator = Identity(username="op", role=UserRole.PARTNER_OPERATOR, organization="acme")
        representative = Identity(
            username="rep",
            role=UserRole.PARTNER_REPRESENTATIVE_BACKOFFICE,
            organization="acme",
        )

        assert operator.is_field_operator
        assert not representative.is_field_operator

    def test_role_codes(self):
        """Test roles parse from their short codes."""
        assert UserRole("PO") is UserRole.PARTNER_OPERATOR
        assert UserRole("PRBO") is UserRole.PARTNER_REPRESENTATIVE_BACKOFFICE
        assert UserRole("SDVBO") is UserRole.SHEET_DETAILED_VIEWER_BACKOFFICE

    def test_shared_organization(self):
        """Test organizations must be declared and equal to be shared."""
        a = Identity(username="a", role=UserRole.PARTNER_OPERATOR, organization="acme")
        b = Identity(username="b", role=UserRole.PARTNER_OPERATOR, organization=" acme ")
        c = Identity(username="c", role=UserRole.PARTNER_OPERATOR, organization="other")
        none1 = Identity(username="n1", role=UserRole.PARTNER_OPERATOR)
        none2 = Identity(username="n2", role=UserRole.PARTNER_OPERATOR, organization="  ")

        assert a.shares_organization_with(b)
        assert not a.shares_organization_with(c)
        assert none2.organization is None
        assert not none1.shares_organization_with(none2)


class TestWorksheetPlan:
    """Test worksheet plans."""

    def test_operation_codes(self):
        plan = WorksheetPlan(
            worksheet_id=1,
            operations=(
                PlannedOperation(operation_code="A", area_ha=1.0),
                PlannedOperation(operation_code="B", area_ha=2.0),
            ),
            polygon_ids=(1, 2),
        )
        assert plan.operation_codes == ("A", "B")

    def test_duplicate_operation_codes_rejected(self):
        """Test operation codes must be unique."""
        with pytest.raises(PydanticValidationError):
            WorksheetPlan(
                worksheet_id=1,
                operations=(
                    PlannedOperation(operation_code="A", area_ha=1.0),
                    PlannedOperation(operation_code="A", area_ha=2.0),
                ),
            )

    def test_duplicate_polygons_rejected(self):
        """Test polygon ids must be unique."""
        with pytest.raises(PydanticValidationError):
            WorksheetPlan(
                worksheet_id=1,
                operations=(PlannedOperation(operation_code="A", area_ha=1.0),),
                polygon_ids=(3, 3),
            )

    def test_requires_an_operation(self):
        with pytest.raises(PydanticValidationError):
            WorksheetPlan(worksheet_id=1, operations=())

    def test_negative_area_rejected(self):
        with pytest.raises(PydanticValidationError):
            PlannedOperation(operation_code="A", area_ha=-0.5)


class TestGeometry:
    """Test polygon geometry parsing."""

    def test_from_geojson(self):
        """Test GeoJSON polygons keep their rings in order."""
        document = {
            "type": "Polygon",
            "coordinates": [
                [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]],
                [[2, 2], [3, 2], [3, 3], [2, 2]],
            ],
        }

        geometry = Geometry.from_geojson(document, polygon_id=4)

        assert geometry.polygon_id == 4
        assert geometry.exterior[1] == (10.0, 0.0)
        assert len(geometry.holes) == 1
        assert geometry.to_geojson()["coordinates"][0][2] == [10.0, 10.0]

    def test_unsupported_type(self):
        """Test only polygons are accepted."""
        with pytest.raises(GeometryError):
            Geometry.from_geojson({"type": "Point", "coordinates": [0, 0]}, polygon_id=1)

    def test_malformed_coordinates(self):
        """Test non-numeric coordinates raise a geometry error."""
        with pytest.raises(GeometryError) as exc_info:
            Geometry.from_geojson({"type": "Polygon", "coordinates": [[["x", 1]]]}, 9)
        assert exc_info.value.polygon_id == 9

    def test_missing_coordinates(self):
        """Test a polygon without rings has an empty exterior."""
        geometry = Geometry.from_geojson({"type": "Polygon"})
        assert geometry.exterior == ()
