"""Resource availability and weekly slot generation.

A booking at instant ``t`` occupies its instructor, aircraft and student for
``[t, t + 2h)``. Two windows overlap when the other booking starts strictly
within two hours either side of ``t``.
"""

import enum
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.config import settings
from flightguard.models.booking import FlightBooking
from flightguard.models.enums import ACTIVE_STATUSES
from flightguard.models.fleet import Aircraft, Instructor, Student
from flightguard.schemas.booking import TimeSlot

logger = logging.getLogger(__name__)

SLOT_DURATION = timedelta(hours=2)
SLOT_HOURS = (8, 10, 12, 14, 16, 18)
SLOT_DAYS_AHEAD = 7


class ResourceKind(str, enum.Enum):
    INSTRUCTOR = "Instructor"
    AIRCRAFT = "Aircraft"
    STUDENT = "Student"


_RESOURCE_COLUMNS = {
    ResourceKind.INSTRUCTOR: FlightBooking.instructor_id,
    ResourceKind.AIRCRAFT: FlightBooking.aircraft_id,
    ResourceKind.STUDENT: FlightBooking.student_id,
}


@dataclass
class SlotCheck:
    available: bool
    reason: str | None = None
    resource: ResourceKind | None = None


def windows_overlap(a: datetime, b: datetime) -> bool:
    return abs(a - b) < SLOT_DURATION


async def find_conflicting_booking(
    db: AsyncSession,
    kind: ResourceKind,
    resource_id: uuid.UUID,
    start: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> FlightBooking | None:
    """Return an active booking of this resource whose window overlaps ``start``."""
    column = _RESOURCE_COLUMNS[kind]
    query = select(FlightBooking).where(
        column == resource_id,
        FlightBooking.status.in_(ACTIVE_STATUSES),
        FlightBooking.scheduled_date > start - SLOT_DURATION,
        FlightBooking.scheduled_date < start + SLOT_DURATION,
    )
    if exclude_booking_id:
        query = query.where(FlightBooking.id != exclude_booking_id)
    result = await db.execute(query.order_by(FlightBooking.scheduled_date).limit(1))
    return result.scalar_one_or_none()


async def is_resource_available(
    db: AsyncSession,
    kind: ResourceKind,
    resource_id: uuid.UUID,
    start: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> bool:
    return await find_conflicting_booking(db, kind, resource_id, start, exclude_booking_id) is None


async def check_slot(
    db: AsyncSession,
    start: datetime,
    instructor_id: uuid.UUID,
    aircraft_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    exclude_booking_id: uuid.UUID | None = None,
    at_phrase: str = "at this time",
) -> SlotCheck:
    """Check each resource independently so the reason names the contended one."""
    resources = [(ResourceKind.INSTRUCTOR, instructor_id), (ResourceKind.AIRCRAFT, aircraft_id)]
    if student_id:
        resources.append((ResourceKind.STUDENT, student_id))

    for kind, resource_id in resources:
        if not await is_resource_available(db, kind, resource_id, start, exclude_booking_id):
            return SlotCheck(available=False, reason=f"{kind.value} is not available {at_phrase}", resource=kind)
    return SlotCheck(available=True)


async def lock_resources(
    db: AsyncSession,
    aircraft_id: uuid.UUID,
    instructor_id: uuid.UUID,
    student_id: uuid.UUID,
) -> tuple[Aircraft | None, Instructor | None, Student | None]:
    """Row-lock the three resources, always in the same order.

    Holding these locks until commit serialises concurrent check-then-insert
    sequences that target the same resource. SQLite ignores FOR UPDATE.
    """
    aircraft = (
        await db.execute(select(Aircraft).where(Aircraft.id == aircraft_id).with_for_update())
    ).scalar_one_or_none()
    instructor = (
        await db.execute(select(Instructor).where(Instructor.id == instructor_id).with_for_update())
    ).scalar_one_or_none()
    student = (
        await db.execute(select(Student).where(Student.id == student_id).with_for_update())
    ).scalar_one_or_none()
    return aircraft, instructor, student


def candidate_instants(now: datetime, tz: ZoneInfo) -> list[datetime]:
    """08:00 through 18:00 local, every two hours, today plus the next week."""
    local_today = now.astimezone(tz).date()
    instants = []
    for day in range(SLOT_DAYS_AHEAD + 1):
        d = local_today + timedelta(days=day)
        for hour in SLOT_HOURS:
            instant = datetime.combine(d, time(hour), tzinfo=tz).astimezone(timezone.utc)
            if instant > now:
                instants.append(instant)
    return instants


async def generate_weekly_slots(
    db: AsyncSession,
    instructor_id: uuid.UUID,
    aircraft_id: uuid.UUID,
    student_id: uuid.UUID | None = None,
    exclude_booking_id: uuid.UUID | None = None,
    now: datetime | None = None,
) -> list[TimeSlot]:
    """Open slots for the coming week, in chronological order."""
    now = now or datetime.now(timezone.utc)
    instants = candidate_instants(now, ZoneInfo(settings.school_timezone))
    if not instants:
        return []

    # One query for every booking that could touch any candidate window
    resource_filter = [FlightBooking.instructor_id == instructor_id, FlightBooking.aircraft_id == aircraft_id]
    if student_id:
        resource_filter.append(FlightBooking.student_id == student_id)
    query = select(FlightBooking).where(
        or_(*resource_filter),
        FlightBooking.status.in_(ACTIVE_STATUSES),
        FlightBooking.scheduled_date > instants[0] - SLOT_DURATION,
        FlightBooking.scheduled_date < instants[-1] + SLOT_DURATION,
    )
    if exclude_booking_id:
        query = query.where(FlightBooking.id != exclude_booking_id)
    busy = (await db.execute(query)).scalars().all()

    slots: list[TimeSlot] = []
    for instant in instants:
        slot = TimeSlot(date_time=instant, available=True)
        for booking in busy:
            if not windows_overlap(booking.scheduled_date, instant):
                continue
            if booking.instructor_id == instructor_id:
                kind = ResourceKind.INSTRUCTOR
            elif booking.aircraft_id == aircraft_id:
                kind = ResourceKind.AIRCRAFT
            else:
                kind = ResourceKind.STUDENT
            slot = TimeSlot(date_time=instant, available=False, reason=f"{kind.value} is not available")
            break
        slots.append(slot)

    open_slots = [s for s in slots if s.available]
    logger.debug(f"Slot generation: {len(open_slots)}/{len(slots)} open for instructor {instructor_id}")
    return open_slots


def get_student_availability(student: Student) -> dict:
    """Parse the student's stored availability preferences; bad data reads as none."""
    if not student.availability:
        return {}
    try:
        value = json.loads(student.availability)
    except json.JSONDecodeError:
        logger.warning(f"Student {student.id} has unreadable availability preferences")
        return {}
    return value if isinstance(value, dict) else {}
