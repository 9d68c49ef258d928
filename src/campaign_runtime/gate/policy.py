"""
Approval policy for the execution gate.

Decides, from the autonomy level, a step's confidence and its channel,
whether a scheduled step may run without a human.
"""

from __future__ import annotations

from ..config.pipeline import GateConfig
from ..scheduling.types import ScheduledStep
from .types import AutonomyLevel, GateDecision, GateResult


class ApprovalPolicy:
    """Confidence/autonomy policy.

    - fully_autonomous: execute when confidence >= threshold
    - semi_autonomous: additionally require approval on restricted channels
    - manual_approval, or any unknown level: always require approval
    """

    def __init__(self, config: GateConfig | None = None):
        self._config = config or GateConfig()

    @property
    def config(self) -> GateConfig:
        return self._config

    def confidence_of(self, entry: ScheduledStep) -> float:
        """The step's confidence, or the channel default when it has none."""
        if entry.confidence is not None:
            return float(entry.confidence)
        return self._config.confidence_for(entry.channel)

    def evaluate(
        self,
        entry: ScheduledStep,
        autonomy_level: AutonomyLevel | str | None = None,
    ) -> GateResult:
        level = AutonomyLevel.parse(
            autonomy_level if autonomy_level is not None else self._config.autonomy_level
        )
        confidence = self.confidence_of(entry)
        threshold = self._config.approval_threshold

        if level is None:
            return GateResult(
                GateDecision.REQUIRE_APPROVAL,
                confidence,
                f"Unknown autonomy level {autonomy_level!r}; approval required",
            )

        if level == AutonomyLevel.MANUAL_APPROVAL:
            return GateResult(
                GateDecision.REQUIRE_APPROVAL,
                confidence,
                "Manual approval mode: every step requires approval",
            )

        if confidence < threshold:
            return GateResult(
                GateDecision.REQUIRE_APPROVAL,
                confidence,
                f"Confidence {confidence:.0%} is below the approval threshold {threshold:.0%}",
            )

        if level == AutonomyLevel.SEMI_AUTONOMOUS and entry.channel in self._config.restricted_channels:
            return GateResult(
                GateDecision.REQUIRE_APPROVAL,
                confidence,
                f"Channel '{entry.channel}' requires approval in semi-autonomous mode",
            )

        return GateResult(
            GateDecision.EXECUTE,
            confidence,
            f"Confidence {confidence:.0%} meets the approval threshold {threshold:.0%}",
        )


__all__ = ["ApprovalPolicy"]
