"""
Compiler, scheduler and execution gate configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .base import AutonomyLevelName

DEFAULT_RESTRICTED_CHANNELS = frozenset(
    {"linkedin", "linkedin_message", "linkedin_connection", "phone", "voicemail"}
)

DEFAULT_CHANNEL_CONFIDENCE: dict[str, float] = {
    "email": 0.90,
    "sms": 0.85,
    "linkedin": 0.75,
    "linkedin_message": 0.75,
    "linkedin_connection": 0.70,
    "phone": 0.65,
    "voicemail": 0.65,
}


@dataclass
class CompilerConfig:
    """Configuration for workflow compilation."""

    # Raise WorkflowCycleError instead of falling back to positional order
    strict_acyclic: bool = False

    default_delay: int = 1
    default_delay_unit: str = "days"

    # Step settings stamped onto every compiled step
    send_window_start: str = "09:00"
    send_window_end: str = "17:00"
    active_days: list[str] = field(
        default_factory=lambda: ["monday", "tuesday", "wednesday", "thursday", "friday"]
    )

    search_max_results: int = 25
    search_connection_degree: str = "2nd"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.default_delay < 0:
            raise ValueError("default_delay cannot be negative")
        if self.default_delay_unit not in ("minutes", "hours", "days", "weeks"):
            raise ValueError(f"Invalid delay unit: {self.default_delay_unit}")
        if self.search_max_results <= 0:
            raise ValueError("search_max_results must be positive")


@dataclass
class SchedulerConfig:
    """Configuration for per-contact scheduling."""

    # Confidence attached to every scheduled entry (0.0 to 1.0)
    default_confidence: float = 0.85

    def __post_init__(self):
        if not 0.0 <= self.default_confidence <= 1.0:
            raise ValueError("default_confidence must be between 0.0 and 1.0")


@dataclass
class GateConfig:
    """Configuration for the execution gate."""

    autonomy_level: AutonomyLevelName = "semi_autonomous"
    approval_threshold: float = 0.80

    approval_ttl_seconds: float = 7 * 24 * 3600
    prioritize_delay_seconds: float = 5 * 60
    preview_max_chars: int = 500

    restricted_channels: frozenset[str] = DEFAULT_RESTRICTED_CHANNELS
    channel_confidence: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_CONFIDENCE)
    )
    fallback_confidence: float = 0.75

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.autonomy_level not in ("manual_approval", "semi_autonomous", "fully_autonomous"):
            raise ValueError(f"Invalid autonomy level: {self.autonomy_level}")
        if not 0.0 <= self.approval_threshold <= 1.0:
            raise ValueError("approval_threshold must be between 0.0 and 1.0")
        if self.approval_ttl_seconds <= 0:
            raise ValueError("approval_ttl_seconds must be positive")
        if self.prioritize_delay_seconds < 0:
            raise ValueError("prioritize_delay_seconds cannot be negative")
        if self.preview_max_chars <= 0:
            raise ValueError("preview_max_chars must be positive")
        if not isinstance(self.restricted_channels, frozenset):
            self.restricted_channels = frozenset(self.restricted_channels)

    def confidence_for(self, channel: str) -> float:
        """Default confidence for a channel when none was attached."""
        return self.channel_confidence.get(channel, self.fallback_confidence)


__all__ = [
    "CompilerConfig",
    "SchedulerConfig",
    "GateConfig",
    "DEFAULT_RESTRICTED_CHANNELS",
    "DEFAULT_CHANNEL_CONFIDENCE",
]
