"""Domain services for field execution."""

from .geodesic_area import GeodesicAreaCalculator
from .progress_aggregator import (
    COMPLETION_EPSILON,
    ProgressAggregator,
    ProgressUpdate,
    accumulate_percent,
    contribution_percent,
)
from .state_machine import TRANSITIONS, ParcelLifecycle, next_status

__all__ = [
    "COMPLETION_EPSILON",
    "GeodesicAreaCalculator",
    "ParcelLifecycle",
    "ProgressAggregator",
    "ProgressUpdate",
    "TRANSITIONS",
    "accumulate_percent",
    "contribution_percent",
    "next_status",
]
