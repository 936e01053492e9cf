"""Conflict detection: decides whether a booking's route is flyable for its student."""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.models.booking import FlightBooking
from flightguard.models.enums import TrainingLevel
from flightguard.schemas.weather import Location, WeatherData, parse_location
from flightguard.services.exceptions import NotFoundError
from flightguard.services.weather_minimums import evaluate
from flightguard.services.weather_provider import WeatherProvider, weather_provider

logger = logging.getLogger(__name__)

SAFE_REASON = "Weather conditions meet minimums"


@dataclass
class WeatherCheckResult:
    is_safe: bool
    reason: str
    # Departure snapshot, even when only the destination violates
    weather_data: WeatherData
    violations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_safe": self.is_safe,
            "reason": self.reason,
            "violations": self.violations,
            "weather_data": self.weather_data.model_dump(mode="json"),
        }


class ConflictDetectionService:
    """Evaluates live conditions along a route against training-level minimums."""

    def __init__(self, provider: WeatherProvider | None = None):
        self.provider = provider or weather_provider

    async def check_booking_safety(self, db: AsyncSession, booking_id: uuid.UUID) -> WeatherCheckResult:
        result = await db.execute(select(FlightBooking).where(FlightBooking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.student is None:
            raise NotFoundError("Student not found for booking")

        locations = [parse_location(booking.departure_location, "departure_location")]
        destination = parse_location(booking.destination_location, "destination_location")
        if destination:
            locations.append(destination)

        return await self.check_route(locations, booking.student.training_level)

    async def check_location_safety(self, location: Location, level: TrainingLevel | str) -> WeatherCheckResult:
        return await self.check_route([location], level)

    async def check_route(self, locations: list[Location], level: TrainingLevel | str) -> WeatherCheckResult:
        """Fetch and evaluate each location; safe only if every one meets minimums."""
        snapshots = await self.provider.fetch_many(locations)

        labelled = len(locations) > 1
        violations: list[str] = []
        violating_names: list[str] = []
        for snapshot in snapshots:
            evaluation = evaluate(snapshot.conditions, level)
            if evaluation.meets:
                continue
            violating_names.append(snapshot.location.name)
            if labelled:
                violations.extend(f"{snapshot.location.name}: {v}" for v in evaluation.violations)
            else:
                violations.extend(evaluation.violations)

        if not violations:
            reason = SAFE_REASON
        elif labelled:
            reason = f"Weather violations at: {'; '.join(violations)}"
        else:
            reason = f"Weather violations: {', '.join(violations)}"

        if violations:
            logger.info(f"Unsafe conditions at {', '.join(violating_names)} for {getattr(level, 'value', level)}")

        return WeatherCheckResult(
            is_safe=not violations,
            reason=reason,
            weather_data=snapshots[0],
            violations=violations,
        )


# Singleton
conflict_detection_service = ConflictDetectionService()
