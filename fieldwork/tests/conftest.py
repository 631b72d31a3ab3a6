import pytest

from fieldwork.domain.execution.value_objects import SheetKey
from fieldwork.tests.factories import (
    ExecutionEnvironment,
    build_environment,
    credential,
    worksheet,
)

WORKSHEET_ID = 7

# Operations "A" and "B" each cover 10 ha over parcels 101 (6 ha) and
# 102 (4 ha).
PARCEL_AREAS = {101: 6.0, 102: 4.0}


@pytest.fixture
def env() -> ExecutionEnvironment:
    return build_environment(
        [worksheet(WORKSHEET_ID, {"A": 10.0, "B": 10.0}, [101, 102])],
        areas=PARCEL_AREAS,
    )


@pytest.fixture
def coordinator(env):
    return env.coordinator


@pytest.fixture
def sheet_key() -> SheetKey:
    return SheetKey(worksheet_id=WORKSHEET_ID)


@pytest.fixture
def created(coordinator, sheet_key):
    """Sheet opened by the partner representative."""
    return coordinator.create(credential("rep"), sheet_key.worksheet_id)


@pytest.fixture
def rep_token() -> str:
    return credential("rep")


@pytest.fixture
def op1_token() -> str:
    return credential("op1")


@pytest.fixture
def op2_token() -> str:
    return credential("op2")
