"""
Activity events for campaign runtime.
"""

from .sink import (
    ActivitySink,
    CallbackActivitySink,
    InMemoryActivitySink,
    NullActivitySink,
    emit_safely,
)
from .types import ActivityAction, ActivityEvent, ActivityType

__all__ = [
    "ActivityType",
    "ActivityAction",
    "ActivityEvent",
    "ActivitySink",
    "NullActivitySink",
    "InMemoryActivitySink",
    "CallbackActivitySink",
    "emit_safely",
]
