"""Reschedule advisor: ranks open slots into exactly three reschedule options.

The ranking itself is delegated to an LLM (or any injected ranker with the
same ``(system, user) -> dict`` shape). Output that does not match the
three-option contract is an error; nothing is padded or invented here.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from flightguard.schemas.booking import RescheduleOption, RescheduleOptionsResponse, TimeSlot
from flightguard.schemas.weather import Location
from flightguard.services.exceptions import ExternalServiceError, ValidationError
from flightguard.services.llm_client import llm_client
from flightguard.services.prompts import load_prompt
from flightguard.services.weather_minimums import describe_minimums

logger = logging.getLogger(__name__)

Ranker = Callable[[str, str], Awaitable[dict]]

_SYSTEM_PROMPT = load_prompt("reschedule_advisor.md")


@dataclass
class RescheduleContext:
    """Everything the ranker needs to know about a grounded flight."""

    booking_id: uuid.UUID
    scheduled_date: datetime
    flight_type: str
    departure: Location
    destination: Location | None
    student_name: str
    training_level: str
    instructor_name: str
    aircraft: str
    conflict_reason: str
    violations: list[str]
    open_slots: list[TimeSlot]
    availability: dict = field(default_factory=dict)


class RescheduleAdvisor:
    def __init__(self, ranker: Ranker | None = None):
        self._ranker = ranker or llm_client.complete_json

    async def rank(self, context: RescheduleContext) -> list[RescheduleOption]:
        """Return three options sorted by priority (1 first).

        Raises:
            ValidationError if there are no open slots to choose from.
            ExternalServiceError if the ranker fails or breaks the output contract.
        """
        if not context.open_slots:
            raise ValidationError("At least one open slot is required to suggest reschedule options")

        prompt = self.build_prompt(context)
        try:
            raw = await self._ranker(_SYSTEM_PROMPT, prompt)
        except Exception as e:
            logger.error(f"Reschedule ranking failed for booking {context.booking_id}: {e}")
            raise ExternalServiceError(
                "Could not generate reschedule options",
                provider="llm",
                hint="The scheduling assistant is unavailable; pick a slot manually or try again",
            ) from e

        try:
            response = RescheduleOptionsResponse.model_validate(raw)
        except PydanticValidationError as e:
            logger.error(f"Reschedule ranker returned invalid options for booking {context.booking_id}: {e}")
            raise ExternalServiceError(
                "Scheduling assistant returned invalid options",
                provider="llm",
                hint="Try again; the assistant must return exactly three options",
                details={"errors": e.errors(include_url=False)},
            ) from e

        open_instants = {slot.date_time for slot in context.open_slots}
        for option in response.options:
            if option.date_time not in open_instants:
                logger.warning(
                    f"Option {option.date_time.isoformat()} for booking {context.booking_id} is not an open slot"
                )

        return sorted(response.options, key=lambda o: o.priority)

    def build_prompt(self, context: RescheduleContext) -> str:
        route = context.departure.name
        if context.destination:
            route = f"{route} -> {context.destination.name}"

        lines = [
            "ORIGINAL FLIGHT",
            f"- Scheduled: {context.scheduled_date.isoformat()}",
            f"- Type: {context.flight_type}",
            f"- Route: {route}",
            f"- Student: {context.student_name} ({context.training_level})",
            f"- Instructor: {context.instructor_name}",
            f"- Aircraft: {context.aircraft}",
            "",
            "WEATHER CONFLICT",
            f"- {context.conflict_reason}",
        ]
        lines += [f"- {v}" for v in context.violations]
        lines += [
            "",
            "TRAINING REQUIREMENTS",
            f"- {describe_minimums(context.training_level)}",
            "",
            f"AVAILABLE SLOTS ({len(context.open_slots)})",
        ]
        lines += [f"{i}. {slot.date_time.isoformat()}" for i, slot in enumerate(context.open_slots, 1)]
        lines += ["", "STUDENT AVAILABILITY PREFERENCES"]
        if context.availability:
            lines += [f"- {day}: {', '.join(windows) if isinstance(windows, list) else windows}"
                      for day, windows in context.availability.items()]
        else:
            lines.append("- None specified")
        return "\n".join(lines)


# Singleton
reschedule_advisor = RescheduleAdvisor()
