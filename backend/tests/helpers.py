"""Shared test data, fakes and factories."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.models.booking import FlightBooking
from flightguard.models.enums import TrainingLevel, UserRole
from flightguard.models.fleet import Aircraft, Instructor, Student
from flightguard.models.user import User
from flightguard.schemas.booking import BookingCreate
from flightguard.schemas.briefing import WeatherBriefing
from flightguard.schemas.weather import Location, WeatherConditions, WeatherData
from flightguard.services.booking_service import booking_service
from flightguard.services.exceptions import ExternalServiceError
from flightguard.services.weather_provider import WeatherProvider

KAUS = Location(name="KAUS", latitude=30.1945, longitude=-97.6699)
KGTU = Location(name="KGTU", latitude=30.6788, longitude=-97.6794)
KHOU = Location(name="KHOU", latitude=29.6454, longitude=-95.2789)

CLEAR = WeatherConditions(
    visibility=10, ceiling=None, wind_speed=5, wind_direction=180, temperature=72, humidity=45, cloud_cover=0
)
STORMY = WeatherConditions(
    visibility=1, ceiling=200, wind_speed=25, temperature=45, humidity=95,
    precipitation=True, thunderstorms=True, icing=True, cloud_cover=100,
)


class StaticWeatherProvider(WeatherProvider):
    """Per-location fixed conditions; names listed in ``failing`` raise."""

    def __init__(
        self,
        conditions: dict[str, WeatherConditions] | None = None,
        default: WeatherConditions = CLEAR,
        failing: set[str] | None = None,
    ):
        self.conditions = conditions or {}
        self.default = default
        self.failing = failing or set()
        self.calls: list[str] = []

    async def fetch_current(self, location: Location) -> WeatherData:
        self.calls.append(location.name)
        if location.name in self.failing:
            raise ExternalServiceError(f"Failed to fetch weather data for {location.name}", provider="static")
        return WeatherData(
            location=location,
            conditions=self.conditions.get(location.name, self.default),
            timestamp=datetime.now(timezone.utc),
        )


@dataclass
class Fleet:
    admin: User
    student_user: User
    student: Student
    instructor_user: User
    instructor: Instructor
    aircraft: Aircraft


def _email(name: str) -> str:
    return f"{name.lower().replace(' ', '.')}@test.dev"


async def make_student(
    db: AsyncSession,
    name: str,
    level: TrainingLevel = TrainingLevel.STUDENT_PILOT,
    availability: dict | None = None,
) -> tuple[User, Student]:
    user = User(email=_email(name), name=name, role=UserRole.STUDENT.value)
    db.add(user)
    await db.flush()
    student = Student(
        user_id=user.id,
        name=name,
        training_level=level.value,
        availability=json.dumps(availability) if availability is not None else None,
    )
    db.add(student)
    await db.flush()
    return user, student


async def make_instructor(db: AsyncSession, name: str) -> tuple[User, Instructor]:
    user = User(email=_email(name), name=name, role=UserRole.INSTRUCTOR.value)
    db.add(user)
    await db.flush()
    instructor = Instructor(user_id=user.id, name=name)
    db.add(instructor)
    await db.flush()
    return user, instructor


async def make_aircraft(db: AsyncSession, tail_number: str) -> Aircraft:
    aircraft = Aircraft(tail_number=tail_number, model="Cessna 172S")
    db.add(aircraft)
    await db.flush()
    return aircraft


async def make_fleet(db: AsyncSession) -> Fleet:
    admin = User(email="admin@test.dev", name="Admin", role=UserRole.ADMIN.value)
    db.add(admin)
    student_user, student = await make_student(
        db, "Alex Kim", availability={"monday": ["08:00-12:00"], "saturday": ["08:00-18:00"]}
    )
    instructor_user, instructor = await make_instructor(db, "Maria Reyes")
    aircraft = await make_aircraft(db, "N172SP")
    await db.commit()
    return Fleet(admin, student_user, student, instructor_user, instructor, aircraft)


async def book(
    db: AsyncSession,
    fleet: Fleet,
    when: datetime,
    *,
    student: Student | None = None,
    instructor: Instructor | None = None,
    aircraft: Aircraft | None = None,
    departure: Location = KAUS,
    destination: Location | None = None,
    notes: str | None = None,
) -> FlightBooking:
    data = BookingCreate(
        student_id=(student or fleet.student).id,
        instructor_id=(instructor or fleet.instructor).id,
        aircraft_id=(aircraft or fleet.aircraft).id,
        scheduled_date=when,
        departure_location=departure,
        destination_location=destination,
        notes=notes,
    )
    return await booking_service.create_booking(db, data, actor_id=fleet.admin.id)


BRIEFING_REPLY = {
    "summary": "Good VFR day for pattern work.",
    "current_conditions": "Clear, 10 mi visibility, wind 180 at 5 kt",
    "forecast": {
        "description": "Clear skies persisting",
        "expected_changes": "Winds increasing to 8 kt after noon",
        "time_range": "Next 6 hours",
    },
    "risk_assessment": {"level": "LOW", "factors": ["Light winds"], "summary": "Low risk"},
    "recommendation": {"action": "PROCEED", "reasoning": "Well within minimums", "alternatives": []},
    "historical_comparison": None,
    "confidence": 0.9,
}


def make_briefing(**overrides) -> WeatherBriefing:
    return WeatherBriefing.model_validate({**BRIEFING_REPLY, **overrides})
