"""Reschedule workflow: option generation, confirmation and manual weather checks.

Orchestrates conflict detection, slot generation, the advisor and the booking
lifecycle for the interactive flows. External failures here propagate to the
caller; a user is waiting on the answer.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.models.booking import FlightBooking, WeatherCheck
from flightguard.models.enums import TERMINAL_STATUSES, BookingStatus, UserRole
from flightguard.models.user import User
from flightguard.schemas.booking import RescheduleOptionsResult, RescheduleSelection
from flightguard.schemas.weather import parse_location
from flightguard.services.booking_service import BookingService, RescheduleOutcome, VerdictOutcome, booking_service
from flightguard.services.briefing_cache import BriefingCache, briefing_cache
from flightguard.services.conflict_detection import (
    ConflictDetectionService,
    WeatherCheckResult,
    conflict_detection_service,
)
from flightguard.services.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from flightguard.services.notification_service import notification_service
from flightguard.services.reschedule_advisor import RescheduleAdvisor, RescheduleContext, reschedule_advisor
from flightguard.services.scheduling_service import generate_weekly_slots, get_student_availability

logger = logging.getLogger(__name__)


def ensure_participant(booking: FlightBooking, user: User) -> None:
    """Admins, the booking's student and its instructor may act on a booking."""
    if user.role == UserRole.ADMIN.value:
        return
    if user.id in (booking.student.user_id, booking.instructor.user_id):
        return
    raise AuthorizationError("You do not have access to this flight")


def ensure_student_owner(booking: FlightBooking, user: User) -> None:
    """Rescheduling is the student's decision (admins may act on their behalf)."""
    if user.role == UserRole.ADMIN.value:
        return
    if user.role != UserRole.STUDENT.value:
        raise AuthorizationError("Only students can reschedule flights")
    if booking.student.user_id != user.id:
        raise AuthorizationError("You can only reschedule your own flights")


class RescheduleService:
    def __init__(
        self,
        bookings: BookingService = booking_service,
        detector: ConflictDetectionService = conflict_detection_service,
        advisor: RescheduleAdvisor = reschedule_advisor,
        cache: BriefingCache = briefing_cache,
    ):
        self.bookings = bookings
        self.detector = detector
        self.advisor = advisor
        self.cache = cache

    async def generate_options(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        user: User,
        now: datetime | None = None,
    ) -> RescheduleOptionsResult:
        booking = await self.bookings.get_booking(db, booking_id)
        ensure_student_owner(booking, user)
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateError("Cannot reschedule cancelled or completed flights")

        reason, violations = await self._conflict_for(db, booking)

        slots = await generate_weekly_slots(
            db,
            booking.instructor_id,
            booking.aircraft_id,
            booking.student_id,
            exclude_booking_id=booking.id,
            now=now,
        )
        if not slots:
            raise NotFoundError("No available time slots found for rescheduling")

        context = RescheduleContext(
            booking_id=booking.id,
            scheduled_date=booking.scheduled_date,
            flight_type=booking.flight_type,
            departure=parse_location(booking.departure_location, "departure_location"),
            destination=parse_location(booking.destination_location, "destination_location"),
            student_name=booking.student.name,
            training_level=booking.student.training_level,
            instructor_name=booking.instructor.name,
            aircraft=f"{booking.aircraft.tail_number} ({booking.aircraft.model})",
            conflict_reason=reason,
            violations=violations,
            open_slots=slots,
            availability=get_student_availability(booking.student),
        )
        options = await self.advisor.rank(context)

        for user_id in (booking.student.user_id, booking.instructor.user_id):
            await notification_service.send_reschedule_options(db, user_id, booking.id, len(options))
        await db.commit()

        logger.info(f"Generated {len(options)} reschedule options for booking {booking.id} from {len(slots)} slots")
        return RescheduleOptionsResult(
            booking_id=booking.id,
            conflict_reason=reason,
            violations=violations,
            options=options,
            available_slots=len(slots),
        )

    async def confirm(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        selection: RescheduleSelection,
        user: User,
        now: datetime | None = None,
    ) -> RescheduleOutcome:
        booking = await self.bookings.get_booking(db, booking_id)
        ensure_student_owner(booking, user)
        return await self.bookings.reschedule_booking(db, booking_id, selection, actor_id=user.id, now=now)

    async def run_manual_check(
        self, db: AsyncSession, booking_id: uuid.UUID, user: User
    ) -> tuple[WeatherCheckResult, VerdictOutcome]:
        """Check weather now and apply the verdict, as the monitor would."""
        booking = await self.bookings.get_booking(db, booking_id)
        ensure_participant(booking, user)
        departure = parse_location(booking.departure_location, "departure_location")

        result = await self.detector.check_booking_safety(db, booking_id)
        outcome = await self.bookings.apply_weather_verdict(db, booking_id, result, actor_id=user.id, source="manual")
        self.cache.invalidate(departure.name)
        return result, outcome

    async def _conflict_for(self, db: AsyncSession, booking: FlightBooking) -> tuple[str, list[str]]:
        """Reason the flight needs moving: latest unsafe check, a hold, or a fresh check."""
        latest = (
            await db.execute(
                select(WeatherCheck)
                .where(WeatherCheck.booking_id == booking.id)
                .order_by(WeatherCheck.created_at.desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        if latest and not latest.is_safe:
            return latest.reason, list(latest.violations or [])
        if booking.status == BookingStatus.WEATHER_HOLD.value:
            return "Flight is on weather hold", []

        result = await self.detector.check_booking_safety(db, booking.id)
        if result.is_safe:
            raise ValidationError("Flight is safe - no weather conflict detected. Rescheduling not necessary.")
        return result.reason, result.violations


# Singleton
reschedule_service = RescheduleService()
