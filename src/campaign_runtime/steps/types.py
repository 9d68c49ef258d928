"""
Compiled campaign step types.

A CampaignStep is the channel-agnostic unit of work produced by the
workflow compiler. Steps are a derived artifact: every compilation of a
campaign replaces the whole set.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DelayUnit(str, Enum):
    """Units a step delay may be expressed in."""
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"

    @property
    def milliseconds(self) -> int:
        return _UNIT_MS[self]

    @classmethod
    def parse(cls, value: Any) -> DelayUnit:
        """Parse a stored unit; unrecognized values fall back to days."""
        if isinstance(value, DelayUnit):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.DAYS


_UNIT_MS: dict[DelayUnit, int] = {
    DelayUnit.MINUTES: 60_000,
    DelayUnit.HOURS: 3_600_000,
    DelayUnit.DAYS: 86_400_000,
    DelayUnit.WEEKS: 604_800_000,
}


def to_milliseconds(delay: int | float, unit: DelayUnit | str) -> int:
    """Convert a delay to milliseconds (unknown units count as days)."""
    return int(delay * DelayUnit.parse(unit).milliseconds)


@dataclass
class CampaignStep:
    """One compiled step of a campaign, in execution order."""
    step_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    campaign_id: str = ""

    channel: str = ""
    label: str = ""
    subject: str | None = None
    content: str = ""

    delay: int = 0
    delay_unit: DelayUnit = DelayUnit.DAYS
    order_index: int = 0

    # Send window, node provenance, message options, search criteria
    settings: dict[str, Any] = field(default_factory=dict)

    created_at: float = field(default_factory=time.time)

    @property
    def delay_ms(self) -> int:
        return to_milliseconds(self.delay, self.delay_unit)

    @property
    def node_id(self) -> str | None:
        return self.settings.get("node_id")

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "campaign_id": self.campaign_id,
            "channel": self.channel,
            "label": self.label,
            "subject": self.subject,
            "content": self.content,
            "delay": self.delay,
            "delay_unit": self.delay_unit.value,
            "order_index": self.order_index,
            "settings": dict(self.settings),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CampaignStep:
        return cls(
            step_id=data.get("step_id", str(uuid.uuid4())),
            campaign_id=data.get("campaign_id", ""),
            channel=data.get("channel", ""),
            label=data.get("label", ""),
            subject=data.get("subject"),
            content=data.get("content") or "",
            delay=int(data.get("delay", 0)),
            delay_unit=DelayUnit.parse(data.get("delay_unit", "days")),
            order_index=int(data.get("order_index", 0)),
            settings=dict(data.get("settings") or {}),
            created_at=data.get("created_at", time.time()),
        )


__all__ = [
    "DelayUnit",
    "to_milliseconds",
    "CampaignStep",
]
