"""
Compiled campaign steps.
"""

from .store import InMemoryStepStore, StepStore
from .types import CampaignStep, DelayUnit, to_milliseconds

__all__ = [
    "CampaignStep",
    "DelayUnit",
    "to_milliseconds",
    "StepStore",
    "InMemoryStepStore",
]
