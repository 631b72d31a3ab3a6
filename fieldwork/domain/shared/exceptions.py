"""
Domain Exceptions

Typed errors raised by the execution-sheet workflow engine. Every workflow
operation either succeeds or raises exactly one of these; ``error_type``
discriminates them for callers that serialize errors.
"""

from enum import Enum


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    GEOMETRY = "geometry"
    CONCURRENCY = "concurrency"
    REPOSITORY = "repository"


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: dict[str, str | int | float | bool | None] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, str | dict[str, str | int | float | bool | None]]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when an argument of a workflow operation is malformed."""

    def __init__(
        self,
        field_name: str,
        value: str | int | float | bool | None,
        message: str,
    ) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Validation failed for field '{field_name}': {message}",
            ErrorType.VALIDATION,
            {"field": field_name, "value": str(value) if value is not None else None},
        )


class BusinessRuleViolation(DomainError):
    """Raised when an entity invariant would be broken."""

    def __init__(self, rule_name: str, message: str) -> None:
        super().__init__(
            f"Business rule '{rule_name}' violated: {message}",
            ErrorType.BUSINESS_RULE,
            {"rule": rule_name},
        )
        self.rule_name = rule_name


class NotFoundError(DomainError):
    """Raised when a referenced sheet, operation, parcel, activity, polygon or user is absent."""

    def __init__(self, entity_type: str, identifier: str) -> None:
        super().__init__(
            f"{entity_type} not found: {identifier}",
            ErrorType.NOT_FOUND,
            {"entity_type": entity_type, "identifier": identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


class UnauthenticatedError(DomainError):
    """Raised by the identity provider when a credential is not accepted."""

    def __init__(self, message: str = "Invalid or expired credential") -> None:
        super().__init__(message, ErrorType.UNAUTHENTICATED)


class PermissionDeniedError(DomainError):
    """Raised when the caller is not allowed to act on the target entity."""

    def __init__(self, username: str, reason: str) -> None:
        super().__init__(
            f"Permission denied for {username}: {reason}",
            ErrorType.PERMISSION_DENIED,
            {"username": username},
        )
        self.username = username
        self.reason = reason


class InvalidStateError(DomainError):
    """Raised when a transition is not allowed from the current state."""

    def __init__(
        self,
        entity_type: str,
        identifier: str,
        current_state: str,
        attempted: str,
    ) -> None:
        super().__init__(
            f"Cannot {attempted} {entity_type} {identifier} in state {current_state}",
            ErrorType.INVALID_STATE,
            {
                "entity_type": entity_type,
                "identifier": identifier,
                "current_state": current_state,
                "attempted": attempted,
            },
        )
        self.entity_type = entity_type
        self.identifier = identifier
        self.current_state = current_state
        self.attempted = attempted


class ConflictError(DomainError):
    """Raised when a workflow operation could not commit."""

    def __init__(
        self,
        message: str,
        details: dict[str, str | int | float | bool | None] | None = None,
    ) -> None:
        super().__init__(message, ErrorType.CONFLICT, details)


class RetriesExhaustedError(ConflictError):
    """Raised when every attempt of a workflow operation lost a write conflict."""

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(
            f"Operation {operation} conflicted with concurrent writers "
            f"{attempts} times; resubmit",
            {"operation": operation, "attempts": attempts},
        )
        self.operation = operation
        self.attempts = attempts


class DuplicateSheetError(ConflictError):
    """Raised when an execution sheet already exists for a worksheet."""

    def __init__(self, worksheet_id: int) -> None:
        super().__init__(
            f"Execution sheet already exists for worksheet {worksheet_id}",
            {"worksheet_id": worksheet_id},
        )
        self.worksheet_id = worksheet_id


class GeometryError(DomainError):
    """Raised when a parcel polygon cannot be measured."""

    def __init__(self, message: str, polygon_id: int | None = None) -> None:
        super().__init__(
            message,
            ErrorType.GEOMETRY,
            {"polygon_id": polygon_id},
        )
        self.polygon_id = polygon_id


# Repository exceptions
class RepositoryError(DomainError):
    """Base class for store-related errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, str | int | float | bool | None] | None = None,
    ) -> None:
        super().__init__(message, ErrorType.REPOSITORY, details)


class ConcurrentModificationError(RepositoryError):
    """Raised by a store commit when another transaction changed a key it read."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(
            f"{kind} {key} was modified by a concurrent transaction",
            {"kind": kind, "key": key},
        )
        self.error_type = ErrorType.CONCURRENCY
        self.kind = kind
        self.key = key


class TransactionClosedError(RepositoryError):
    """Raised when a committed or rolled back transaction is used again."""
