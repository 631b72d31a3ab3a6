"""Caller identity as resolved by the identity provider."""

from pydantic import Field, field_validator

from ...shared.base import ValueObject
from .enums import UserRole


class Identity(ValueObject):
    """An authenticated account: username, role and partner organization."""

    username: str = Field(min_length=1, max_length=100)
    role: UserRole
    organization: str | None = None

    @field_validator("organization")
    @classmethod
    def normalize_organization(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def is_field_operator(self) -> bool:
        return self.role.is_field_operator

    def shares_organization_with(self, other: "Identity") -> bool:
        """Two accounts share an organization only if both declare the same one."""
        return self.organization is not None and self.organization == other.organization
