"""Booking lifecycle: creation, updates and every status transition of a flight.

States: CONFIRMED <-> WEATHER_HOLD, and either of those -> CANCELLED or
COMPLETED (terminal). Each status change writes exactly one FlightHistory
row, and every UPDATE of a booking row is compare-and-swapped on its
``version`` column by the mapper.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from flightguard.database import utcnow
from flightguard.models.booking import FlightBooking, RescheduleEvent, WeatherCheck
from flightguard.models.enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
    HistoryAction,
    RescheduleStatus,
)
from flightguard.schemas.booking import BookingCreate, BookingUpdate, RescheduleSelection
from flightguard.schemas.weather import serialize_location
from flightguard.services.conflict_detection import WeatherCheckResult
from flightguard.services.exceptions import (
    AlreadyCancelledError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from flightguard.services.flight_history_service import flight_history_service
from flightguard.services.notification_service import notification_service
from flightguard.services.scheduling_service import check_slot, lock_resources

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.CONFIRMED: {BookingStatus.WEATHER_HOLD, BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.WEATHER_HOLD: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

STALE_MESSAGE = "Flight was modified by another request; reload and try again"


@dataclass
class VerdictOutcome:
    booking: FlightBooking
    weather_check: WeatherCheck
    previous_status: str

    @property
    def transitioned(self) -> bool:
        return self.previous_status != self.booking.status

    @property
    def placed_on_hold(self) -> bool:
        return self.transitioned and self.booking.status == BookingStatus.WEATHER_HOLD.value

    @property
    def cleared(self) -> bool:
        return self.transitioned and self.booking.status == BookingStatus.CONFIRMED.value


@dataclass
class RescheduleOutcome:
    original: FlightBooking
    new_booking: FlightBooking
    event: RescheduleEvent


@asynccontextmanager
async def _transaction(db: AsyncSession):
    """Commit on success; roll everything back on any failure."""
    try:
        yield
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        raise ConflictError(STALE_MESSAGE) from e
    except Exception:
        await db.rollback()
        raise


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class BookingService:
    """Owns every write to FlightBooking and its dependent rows."""

    async def get_booking(self, db: AsyncSession, booking_id: uuid.UUID, for_update: bool = False) -> FlightBooking:
        query = select(FlightBooking).where(FlightBooking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        booking = (await db.execute(query)).scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    # ---------- Create / update ----------

    async def create_booking(
        self,
        db: AsyncSession,
        data: BookingCreate,
        actor_id: uuid.UUID | None,
        now: datetime | None = None,
    ) -> FlightBooking:
        now = now or utcnow()
        if data.scheduled_date <= now:
            raise ValidationError("Flight must be scheduled in the future")

        async with _transaction(db):
            aircraft, instructor, student = await lock_resources(
                db, data.aircraft_id, data.instructor_id, data.student_id
            )
            if not student:
                raise NotFoundError("Student not found")
            if not instructor:
                raise NotFoundError("Instructor not found")
            if not aircraft:
                raise NotFoundError("Aircraft not found")

            slot = await check_slot(db, data.scheduled_date, instructor.id, aircraft.id, student.id)
            if not slot.available:
                raise ConflictError(slot.reason, details={"resource": slot.resource.value})

            booking = FlightBooking(
                student=student,
                instructor=instructor,
                aircraft=aircraft,
                scheduled_date=data.scheduled_date,
                departure_location=serialize_location(data.departure_location),
                destination_location=serialize_location(data.destination_location),
                flight_type=data.flight_type.value,
                status=BookingStatus.CONFIRMED.value,
                notes=data.notes,
                created_by=actor_id,
                last_modified_by=actor_id,
            )
            db.add(booking)
            await db.flush()

            await flight_history_service.log_action(
                db,
                booking.id,
                HistoryAction.CREATED,
                actor_id,
                changes={"status": {"old": None, "new": booking.status}, "scheduled_date": _iso(booking.scheduled_date)},
            )
            for user_id in (student.user_id, instructor.user_id):
                await notification_service.send_flight_confirmed(db, user_id, booking.id, booking.scheduled_date)

        logger.info(f"Booking {booking.id} created for {booking.scheduled_date.isoformat()}")
        return booking

    async def update_booking(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        data: BookingUpdate,
        actor_id: uuid.UUID | None,
        now: datetime | None = None,
    ) -> FlightBooking:
        """Edit schedule, route, type or notes.

        Moving the date re-runs the three-resource conflict check, excluding
        this booking's own window.
        """
        now = now or utcnow()
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            self._check_version(booking, data.expected_version)
            if booking.status in TERMINAL_STATUSES:
                raise InvalidStateError("Cannot update cancelled or completed flights")

            changes: dict = {}
            if data.scheduled_date is not None and data.scheduled_date != booking.scheduled_date:
                if data.scheduled_date <= now:
                    raise ValidationError("Flight must be scheduled in the future")
                await lock_resources(db, booking.aircraft_id, booking.instructor_id, booking.student_id)
                slot = await check_slot(
                    db,
                    data.scheduled_date,
                    booking.instructor_id,
                    booking.aircraft_id,
                    booking.student_id,
                    exclude_booking_id=booking.id,
                )
                if not slot.available:
                    raise ConflictError(slot.reason, details={"resource": slot.resource.value})
                changes["scheduled_date"] = {"old": _iso(booking.scheduled_date), "new": _iso(data.scheduled_date)}
                booking.scheduled_date = data.scheduled_date

            if data.departure_location is not None:
                raw = serialize_location(data.departure_location)
                if raw != booking.departure_location:
                    changes["departure_location"] = {"old": booking.departure_location, "new": raw}
                    booking.departure_location = raw

            if "destination_location" in data.model_fields_set:
                raw = serialize_location(data.destination_location)
                if raw != booking.destination_location:
                    changes["destination_location"] = {"old": booking.destination_location, "new": raw}
                    booking.destination_location = raw

            if data.flight_type is not None and data.flight_type.value != booking.flight_type:
                changes["flight_type"] = {"old": booking.flight_type, "new": data.flight_type.value}
                booking.flight_type = data.flight_type.value

            if "notes" in data.model_fields_set and data.notes != booking.notes:
                changes["notes"] = {"old": booking.notes, "new": data.notes}
                booking.notes = data.notes

            if changes:
                booking.last_modified_by = actor_id
                await flight_history_service.log_action(db, booking.id, HistoryAction.UPDATED, actor_id, changes=changes)

        return booking

    # ---------- Status transitions ----------

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> FlightBooking:
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            if booking.status == BookingStatus.CANCELLED.value:
                raise AlreadyCancelledError()
            if booking.status == BookingStatus.COMPLETED.value:
                raise InvalidStateError("Cannot cancel completed flights")
            self._check_version(booking, expected_version)

            await self._transition(db, booking, BookingStatus.CANCELLED, actor_id, HistoryAction.CANCELLED, notes=reason)
            for user_id in self._participants(booking):
                await notification_service.send_flight_cancelled(db, user_id, booking.id, booking.scheduled_date, reason)

        logger.info(f"Booking {booking.id} cancelled")
        return booking

    async def complete_booking(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        expected_version: int | None = None,
    ) -> FlightBooking:
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            if booking.status in TERMINAL_STATUSES:
                raise InvalidStateError("Cannot complete cancelled or completed flights")
            self._check_version(booking, expected_version)
            await self._transition(db, booking, BookingStatus.COMPLETED, actor_id, HistoryAction.STATUS_CHANGED)
        return booking

    async def place_on_hold(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> FlightBooking:
        """Manual weather hold, e.g. an instructor's call on local conditions."""
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            if booking.status != BookingStatus.CONFIRMED.value:
                raise InvalidStateError("Only confirmed flights can be placed on weather hold")
            self._check_version(booking, expected_version)
            note = reason or "Placed on weather hold manually"
            await self._transition(db, booking, BookingStatus.WEATHER_HOLD, actor_id, HistoryAction.STATUS_CHANGED, notes=note)
            for user_id in self._participants(booking):
                await notification_service.send_weather_alert(db, user_id, booking.id, booking.scheduled_date, note)
        return booking

    async def release_hold(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> FlightBooking:
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            if booking.status != BookingStatus.WEATHER_HOLD.value:
                raise InvalidStateError("Flight is not on weather hold")
            self._check_version(booking, expected_version)
            await self._transition(
                db, booking, BookingStatus.CONFIRMED, actor_id, HistoryAction.STATUS_CHANGED,
                notes=reason or "Weather hold released manually",
            )
        return booking

    async def apply_weather_verdict(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        result: WeatherCheckResult,
        actor_id: uuid.UUID | None = None,
        source: str = "manual",
    ) -> VerdictOutcome:
        """Record a safety verdict and move the booking between CONFIRMED and WEATHER_HOLD.

        A WeatherCheck row is appended on every call. Only CONFIRMED+unsafe
        and WEATHER_HOLD+safe change status; everything else is recorded only.
        """
        async with _transaction(db):
            booking = await self.get_booking(db, booking_id, for_update=True)
            check = WeatherCheck(
                booking_id=booking.id,
                weather_data=result.weather_data.model_dump(mode="json"),
                is_safe=result.is_safe,
                reason=result.reason,
                violations=result.violations,
                source=source,
            )
            db.add(check)
            previous = booking.status

            if not result.is_safe and previous == BookingStatus.CONFIRMED.value:
                await self._transition(
                    db, booking, BookingStatus.WEATHER_HOLD, actor_id, HistoryAction.STATUS_CHANGED,
                    notes=result.reason, extra_changes={"violations": result.violations},
                )
                for user_id in self._participants(booking):
                    await notification_service.send_weather_alert(
                        db, user_id, booking.id, booking.scheduled_date, result.reason
                    )
            elif result.is_safe and previous == BookingStatus.WEATHER_HOLD.value:
                await self._transition(
                    db, booking, BookingStatus.CONFIRMED, actor_id, HistoryAction.STATUS_CHANGED,
                    notes="Weather conditions now meet minimums",
                )
            else:
                await db.flush()

        return VerdictOutcome(booking=booking, weather_check=check, previous_status=previous)

    # ---------- Reschedule ----------

    async def reschedule_booking(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        selection: RescheduleSelection,
        actor_id: uuid.UUID | None,
        now: datetime | None = None,
    ) -> RescheduleOutcome:
        """Move a flight to a new slot as one atomic unit.

        Cancels the original, creates its successor and links both through a
        RescheduleEvent. The slot is re-checked here because the option list
        the caller picked from may be stale.
        """
        option = selection.selected_option
        now = now or utcnow()
        if option.date_time <= now:
            raise ValidationError("Selected time must be in the future")

        async with _transaction(db):
            original = await self.get_booking(db, booking_id, for_update=True)
            if original.status not in ACTIVE_STATUSES:
                raise InvalidStateError("Cannot reschedule cancelled or completed flights")
            self._check_version(original, selection.expected_version)

            await lock_resources(db, original.aircraft_id, original.instructor_id, original.student_id)
            slot = await check_slot(
                db,
                option.date_time,
                original.instructor_id,
                original.aircraft_id,
                original.student_id,
                exclude_booking_id=original.id,
                at_phrase="at the selected time",
            )
            if not slot.available:
                raise ConflictError(slot.reason, details={"resource": slot.resource.value})

            event = RescheduleEvent(
                original_booking_id=original.id,
                suggested_options=[o.model_dump(mode="json") for o in selection.suggested_options],
                selected_option=option.model_dump(mode="json"),
                status=RescheduleStatus.PENDING.value,
            )
            db.add(event)

            await self._transition(
                db, original, BookingStatus.CANCELLED, actor_id, HistoryAction.RESCHEDULED,
                notes=f"Rescheduled to {_iso(option.date_time)}",
                extra_changes={"rescheduled_to": _iso(option.date_time)},
            )

            lineage = f"Rescheduled from flight #{original.id}"
            new_booking = FlightBooking(
                student=original.student,
                instructor=original.instructor,
                aircraft=original.aircraft,
                scheduled_date=option.date_time,
                departure_location=original.departure_location,
                destination_location=original.destination_location,
                flight_type=original.flight_type,
                status=BookingStatus.CONFIRMED.value,
                notes=f"{original.notes}\n\n{lineage}" if original.notes else lineage,
                created_by=actor_id,
                last_modified_by=actor_id,
            )
            db.add(new_booking)
            await db.flush()

            event.new_booking_id = new_booking.id
            event.status = RescheduleStatus.CONFIRMED.value
            event.confirmed_at = utcnow()

            await flight_history_service.log_action(
                db,
                new_booking.id,
                HistoryAction.CREATED,
                actor_id,
                changes={
                    "status": {"old": None, "new": new_booking.status},
                    "scheduled_date": _iso(new_booking.scheduled_date),
                    "rescheduled_from": str(original.id),
                },
            )
            for user_id in self._participants(original):
                await notification_service.send_reschedule_confirmed(
                    db, user_id, new_booking.id, original.scheduled_date, new_booking.scheduled_date
                )

        logger.info(f"Booking {original.id} rescheduled to {new_booking.id} at {_iso(option.date_time)}")
        return RescheduleOutcome(original=original, new_booking=new_booking, event=event)

    # ---------- Internals ----------

    async def _transition(
        self,
        db: AsyncSession,
        booking: FlightBooking,
        new_status: BookingStatus,
        actor_id: uuid.UUID | None,
        action: HistoryAction,
        notes: str | None = None,
        extra_changes: dict | None = None,
    ) -> None:
        old_status = booking.status
        if new_status not in ALLOWED_TRANSITIONS[BookingStatus(old_status)]:
            raise InvalidStateError(f"Cannot change flight status from {old_status} to {new_status.value}")

        booking.status = new_status.value
        booking.last_modified_by = actor_id
        changes = {"status": {"old": old_status, "new": new_status.value}}
        if extra_changes:
            changes.update(extra_changes)
        await flight_history_service.log_action(db, booking.id, action, actor_id, changes=changes, notes=notes)

    @staticmethod
    def _check_version(booking: FlightBooking, expected_version: int | None) -> None:
        if expected_version is not None and booking.version != expected_version:
            raise ConflictError(
                STALE_MESSAGE,
                details={"expected_version": expected_version, "current_version": booking.version},
            )

    @staticmethod
    def _participants(booking: FlightBooking) -> list[uuid.UUID]:
        return [booking.student.user_id, booking.instructor.user_id]


# Singleton
booking_service = BookingService()
