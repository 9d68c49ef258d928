"""
Per-contact step scheduling.

The StepScheduler expands an ordered step list into one ScheduledStep per
(step, contact) pair. Each contact's delays accumulate, so a contact's
entries are non-decreasing in time.
"""

from __future__ import annotations

import time

from ..config.pipeline import SchedulerConfig
from ..errors import ErrorContext, NoContactsFound, NoStepsToSchedule
from ..logging import StructuredLogger, get_logger
from ..steps.types import CampaignStep, to_milliseconds
from .personalization import contact_tokens, personalize
from .types import Contact, ScheduledStep


class StepScheduler:
    """Builds timed, personalized schedules from compiled steps.

    Pure and synchronous; persisting the result (and activating the
    campaign) is the caller's job.
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._config = config or SchedulerConfig()
        self._logger = logger or get_logger()

    def schedule(
        self,
        steps: list[CampaignStep],
        contacts: list[Contact],
        *,
        campaign_id: str,
        base_time: float | None = None,
        workspace_id: str | None = None,
    ) -> list[ScheduledStep]:
        """Schedule every step for every contact.

        Args:
            steps: Compiled steps (ordered by order_index)
            contacts: Resolved contacts
            campaign_id: Owning campaign
            base_time: Epoch seconds the first step is measured from (default: now)

        Raises:
            NoStepsToSchedule: If ``steps`` is empty
            NoContactsFound: If ``contacts`` is empty
        """
        error_context = ErrorContext(campaign_id=campaign_id, workspace_id=workspace_id, operation="schedule")
        if not steps:
            raise NoStepsToSchedule(context=error_context)
        if not contacts:
            raise NoContactsFound(context=error_context)

        base = time.time() if base_time is None else base_time
        ordered = sorted(steps, key=lambda s: s.order_index)
        entries: list[ScheduledStep] = []

        # One entry per (step, contact), even if a contact id is repeated
        unique_contacts = list({c.id: c for c in reversed(contacts)}.values())[::-1]

        for contact in unique_contacts:
            tokens = contact_tokens(contact)
            cumulative_ms = 0
            for step in ordered:
                cumulative_ms += max(0, to_milliseconds(step.delay, step.delay_unit))
                entries.append(
                    ScheduledStep(
                        campaign_id=campaign_id,
                        step_id=step.step_id,
                        contact_id=contact.id,
                        workspace_id=workspace_id,
                        channel=step.channel,
                        step_index=step.order_index,
                        scheduled_at=base + cumulative_ms / 1000.0,
                        content={
                            "subject": personalize(step.subject, contact, tokens) if step.subject else None,
                            "body": personalize(step.content, contact, tokens),
                            "contact_email": contact.email,
                            "contact_name": contact.full_name,
                            "linkedin_url": contact.linkedin_url,
                            "phone": contact.phone,
                        },
                        confidence=self._config.default_confidence,
                    )
                )

        self._logger.debug(
            "Scheduled campaign",
            campaign_id=campaign_id,
            contact_count=len(unique_contacts),
            step_count=len(ordered),
            entry_count=len(entries),
        )
        return entries


__all__ = ["StepScheduler"]
