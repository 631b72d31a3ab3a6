"""
Tests for the in-memory collaborator providers.
"""

import pytest

from fieldwork.domain.execution.value_objects import Identity, UserRole
from fieldwork.domain.shared.exceptions import NotFoundError, UnauthenticatedError
from fieldwork.infrastructure.providers.in_memory import (
    InMemoryGeometryProvider,
    InMemoryIdentityProvider,
    InMemoryWorksheetProvider,
)
from fieldwork.tests.factories import square, worksheet


class TestInMemoryIdentityProvider:
    def test_register_and_authenticate(self):
        provider = InMemoryIdentityProvider()
        identity = Identity(username="op1", role=UserRole.PARTNER_OPERATOR, organization="acme")

        token = provider.register(identity)

        assert token == "token-op1"
        assert provider.authenticate(token) == identity
        assert provider.get_user("op1") == identity

    def test_unknown_credential(self):
        with pytest.raises(UnauthenticatedError):
            InMemoryIdentityProvider().authenticate("nope")

    def test_revoked_credential(self):
        provider = InMemoryIdentityProvider()
        token = provider.register(Identity(username="rep", role=UserRole.PARTNER_REPRESENTATIVE_BACKOFFICE))
        provider.revoke(token)

        with pytest.raises(UnauthenticatedError):
            provider.authenticate(token)

    def test_unknown_user(self):
        with pytest.raises(NotFoundError) as exc_info:
            InMemoryIdentityProvider().get_user("ghost")
        assert exc_info.value.entity_type == "User"


class TestInMemoryWorksheetProvider:
    def test_lookup(self):
        provider = InMemoryWorksheetProvider([worksheet(4, {"A": 1.0}, [1])])
        provider.add(worksheet(5, {"B": 2.0}, [2]))

        assert provider.get_worksheet(4).operation_codes == ("A",)
        assert provider.get_worksheet(5).polygon_ids == (2,)
        with pytest.raises(NotFoundError):
            provider.get_worksheet(6)


class TestInMemoryGeometryProvider:
    def test_lookup(self):
        provider = InMemoryGeometryProvider({1: square(1, 10.0)})
        provider.add(2, square(2, 20.0))

        assert provider.get_polygon(2).polygon_id == 2
        with pytest.raises(NotFoundError):
            provider.get_polygon(3)
