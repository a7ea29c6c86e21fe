"""Domain models for cafewatch.

This package contains the records kept by the presence registry and the
result objects its operations return. All models use Pydantic v2.
"""

from cafewatch.domain.models import (
    AckResult,
    AssignResult,
    HeartbeatResult,
    LaunchDirective,
    LaunchResult,
    LaunchStatusResult,
    StatusResult,
    SystemRecord,
)

__all__ = [
    "AckResult",
    "AssignResult",
    "HeartbeatResult",
    "LaunchDirective",
    "LaunchResult",
    "LaunchStatusResult",
    "StatusResult",
    "SystemRecord",
]
