"""
Per-contact scheduling: scheduler, personalization, scheduled step store.
"""

from .personalization import contact_tokens, personalize
from .scheduler import StepScheduler
from .store import InMemoryScheduledStepStore, ScheduledFilter, ScheduledStepStore
from .types import (
    DEFAULT_PRIORITY,
    TOP_PRIORITY,
    VALID_TRANSITIONS,
    Contact,
    ScheduledStatus,
    ScheduledStep,
)

__all__ = [
    "StepScheduler",
    "personalize",
    "contact_tokens",
    "Contact",
    "ScheduledStatus",
    "ScheduledStep",
    "VALID_TRANSITIONS",
    "DEFAULT_PRIORITY",
    "TOP_PRIORITY",
    "ScheduledFilter",
    "ScheduledStepStore",
    "InMemoryScheduledStepStore",
]
