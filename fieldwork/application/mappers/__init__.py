"""Application DTO mappers."""

from .execution_mappers import ExecutionDTOMapper

__all__ = ["ExecutionDTOMapper"]
