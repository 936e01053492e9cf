import uuid

import pytest

from flightguard.data.demo_scenarios import DEMO_SCENARIOS
from flightguard.models.enums import TrainingLevel
from flightguard.services.conflict_detection import SAFE_REASON, ConflictDetectionService
from flightguard.services.exceptions import ExternalServiceError, NotFoundError, ValidationError
from flightguard.services.weather_provider import ScenarioWeatherProvider

from tests.helpers import CLEAR, KAUS, KGTU, STORMY, StaticWeatherProvider, book

STUDENT_CONFLICT = DEMO_SCENARIOS["student-conflict"].conditions


async def test_safe_booking(db, fleet, base_time):
    booking = await book(db, fleet, base_time, destination=KGTU)
    detector = ConflictDetectionService(StaticWeatherProvider())

    result = await detector.check_booking_safety(db, booking.id)

    assert result.is_safe is True
    assert result.reason == SAFE_REASON
    assert result.violations == []


async def test_single_location_violations_are_unprefixed(db, fleet, base_time):
    booking = await book(db, fleet, base_time)
    detector = ConflictDetectionService(ScenarioWeatherProvider("student-conflict"))

    result = await detector.check_booking_safety(db, booking.id)

    assert result.is_safe is False
    assert result.reason.startswith("Weather violations: Visibility 3 mi")
    assert not any(v.startswith("KAUS:") for v in result.violations)


async def test_destination_violation_is_labelled_and_departure_snapshot_returned(db, fleet, base_time):
    booking = await book(db, fleet, base_time, destination=KGTU)
    provider = StaticWeatherProvider({"KAUS": CLEAR, "KGTU": STUDENT_CONFLICT})
    detector = ConflictDetectionService(provider)

    result = await detector.check_booking_safety(db, booking.id)

    assert result.is_safe is False
    assert result.reason.startswith("Weather violations at: KGTU: ")
    assert all(v.startswith("KGTU: ") for v in result.violations)
    assert result.weather_data.location.name == "KAUS"
    assert result.weather_data.conditions == CLEAR
    assert provider.calls == ["KAUS", "KGTU"]


async def test_uses_the_students_training_level(db, fleet, base_time):
    booking = await book(db, fleet, base_time)
    fleet.student.training_level = TrainingLevel.INSTRUMENT_RATED.value
    await db.commit()
    detector = ConflictDetectionService(ScenarioWeatherProvider("private-conflict"))

    result = await detector.check_booking_safety(db, booking.id)

    assert result.is_safe is True


async def test_missing_booking_is_not_found(db, fleet):
    detector = ConflictDetectionService(StaticWeatherProvider())
    with pytest.raises(NotFoundError):
        await detector.check_booking_safety(db, uuid.uuid4())


async def test_provider_failure_is_an_error_not_a_verdict(db, fleet, base_time):
    booking = await book(db, fleet, base_time, destination=KGTU)
    detector = ConflictDetectionService(StaticWeatherProvider(failing={"KGTU"}))
    with pytest.raises(ExternalServiceError):
        await detector.check_booking_safety(db, booking.id)


async def test_malformed_stored_location_is_validation_error(db, fleet, base_time):
    booking = await book(db, fleet, base_time)
    booking.departure_location = "{not json"
    await db.commit()
    detector = ConflictDetectionService(StaticWeatherProvider())

    with pytest.raises(ValidationError):
        await detector.check_booking_safety(db, booking.id)


async def test_check_location_safety():
    detector = ConflictDetectionService(StaticWeatherProvider(default=STORMY))

    result = await detector.check_location_safety(KAUS, TrainingLevel.INSTRUMENT_RATED)

    assert result.is_safe is False
    assert "Thunderstorms not allowed" in result.violations
    assert "Icing conditions not allowed" in result.violations
    assert result.to_dict()["weather_data"]["location"]["name"] == "KAUS"
