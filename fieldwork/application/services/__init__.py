"""Application services."""

from .execution_coordinator import ExecutionCoordinator

__all__ = ["ExecutionCoordinator"]
