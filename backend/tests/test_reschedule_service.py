from datetime import timedelta

import pytest
from sqlalchemy import func, select

from flightguard.models.enums import BookingStatus, NotificationType
from flightguard.models.notification import Notification
from flightguard.schemas.booking import RescheduleSelection
from flightguard.services.booking_service import booking_service
from flightguard.services.briefing_cache import BriefingCache
from flightguard.services.conflict_detection import ConflictDetectionService
from flightguard.services.exceptions import AuthorizationError, InvalidStateError, ValidationError
from flightguard.services.reschedule_advisor import RescheduleAdvisor
from flightguard.services.reschedule_service import RescheduleService

from tests.helpers import CLEAR, STORMY, StaticWeatherProvider, book, make_briefing, make_student


@pytest.fixture
def prompts():
    return []


@pytest.fixture
def make_service(base_time, prompts):
    def factory(conditions=CLEAR, cache=None) -> RescheduleService:
        async def ranker(system: str, user: str) -> dict:
            prompts.append(user)
            return {
                "options": [
                    {
                        "date_time": (base_time + timedelta(days=1, hours=2 * i)).isoformat(),
                        "reasoning": "Front clears overnight",
                        "weather_forecast": "Clear, light winds",
                        "priority": i + 1,
                        "confidence": 0.8,
                    }
                    for i in range(3)
                ]
            }

        return RescheduleService(
            bookings=booking_service,
            detector=ConflictDetectionService(StaticWeatherProvider(default=conditions)),
            advisor=RescheduleAdvisor(ranker),
            cache=cache or BriefingCache(),
        )

    return factory


async def test_manual_check_holds_flight_and_invalidates_briefings(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    cache = BriefingCache()
    cache.set("KAUS", base_time, "STUDENT_PILOT", make_briefing())
    service = make_service(STORMY, cache)

    result, outcome = await service.run_manual_check(db, booking.id, fleet.instructor_user)

    assert result.is_safe is False
    assert outcome.placed_on_hold is True
    assert outcome.weather_check.source == "manual"
    assert len(cache) == 0


async def test_options_for_a_held_flight(db, fleet, base_time, make_service, prompts):
    booking = await book(db, fleet, base_time)
    service = make_service(STORMY)
    await service.run_manual_check(db, booking.id, fleet.student_user)

    result = await service.generate_options(db, booking.id, fleet.student_user)

    assert result.booking_id == booking.id
    assert result.conflict_reason.startswith("Weather violations: ")
    assert "Thunderstorms not allowed" in result.violations
    assert [o.priority for o in result.options] == [1, 2, 3]
    assert result.available_slots > 0
    assert "AVAILABLE SLOTS" in prompts[0]
    notified = (await db.execute(
        select(func.count()).select_from(Notification).where(
            Notification.booking_id == booking.id,
            Notification.type == NotificationType.RESCHEDULE_OPTIONS.value,
        )
    )).scalar_one()
    assert notified == 2


async def test_options_for_a_manual_hold_use_the_hold_as_reason(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    await booking_service.place_on_hold(db, booking.id, actor_id=fleet.instructor_user.id)

    result = await make_service(CLEAR).generate_options(db, booking.id, fleet.student_user)

    assert result.conflict_reason == "Flight is on weather hold"
    assert result.violations == []


async def test_options_check_weather_when_nothing_is_recorded(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)

    result = await make_service(STORMY).generate_options(db, booking.id, fleet.student_user)

    assert result.conflict_reason.startswith("Weather violations: ")


async def test_safe_flights_do_not_need_rescheduling(db, fleet, base_time, make_service, prompts):
    booking = await book(db, fleet, base_time)

    with pytest.raises(ValidationError, match="Rescheduling not necessary"):
        await make_service(CLEAR).generate_options(db, booking.id, fleet.student_user)
    assert prompts == []


async def test_only_the_owning_student_or_admin_reschedules(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    other_user, _ = await make_student(db, "Jordan Patel")
    await db.commit()
    service = make_service(STORMY)

    with pytest.raises(AuthorizationError, match="Only students can reschedule flights"):
        await service.generate_options(db, booking.id, fleet.instructor_user)
    with pytest.raises(AuthorizationError, match="You can only reschedule your own flights"):
        await service.generate_options(db, booking.id, other_user)

    result = await service.generate_options(db, booking.id, fleet.admin)
    assert len(result.options) == 3


async def test_outsiders_cannot_run_weather_checks(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    other_user, _ = await make_student(db, "Jordan Patel")
    await db.commit()

    with pytest.raises(AuthorizationError):
        await make_service(STORMY).run_manual_check(db, booking.id, other_user)


async def test_terminal_flights_cannot_be_rescheduled(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    await booking_service.cancel_booking(db, booking.id, actor_id=fleet.admin.id)

    with pytest.raises(InvalidStateError):
        await make_service(STORMY).generate_options(db, booking.id, fleet.student_user)


async def test_confirm_moves_the_flight(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    service = make_service(STORMY)
    options = (await service.generate_options(db, booking.id, fleet.student_user)).options

    outcome = await service.confirm(
        db,
        booking.id,
        RescheduleSelection(selected_option=options[0], suggested_options=options, expected_version=1),
        fleet.student_user,
    )

    assert outcome.original.status == BookingStatus.CANCELLED.value
    assert outcome.new_booking.scheduled_date == options[0].date_time
    assert outcome.event.selected_option["priority"] == 1


async def test_confirm_requires_the_owning_student(db, fleet, base_time, make_service):
    booking = await book(db, fleet, base_time)
    selection = RescheduleSelection(
        selected_option={
            "date_time": base_time + timedelta(days=1),
            "reasoning": "Clear",
            "weather_forecast": "Clear",
            "priority": 1,
            "confidence": 0.9,
        }
    )

    with pytest.raises(AuthorizationError):
        await make_service().confirm(db, booking.id, selection, fleet.instructor_user)
