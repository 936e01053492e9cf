import logging
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from flightguard.schemas.booking import TimeSlot
from flightguard.services.exceptions import ExternalServiceError, ValidationError
from flightguard.services.llm_client import LLMClient, strip_code_fences
from flightguard.services.reschedule_advisor import RescheduleAdvisor, RescheduleContext

from tests.helpers import KAUS, KGTU

START = datetime(2030, 3, 4, 14, 0, tzinfo=timezone.utc)
SLOTS = [TimeSlot(date_time=START + timedelta(hours=2 * i), available=True) for i in range(5)]


def make_context(**overrides) -> RescheduleContext:
    values = dict(
        booking_id=uuid.uuid4(),
        scheduled_date=START - timedelta(days=1),
        flight_type="TRAINING",
        departure=KAUS,
        destination=KGTU,
        student_name="Alex Kim",
        training_level="STUDENT_PILOT",
        instructor_name="Maria Reyes",
        aircraft="N172SP (Cessna 172S)",
        conflict_reason="Weather violations: Visibility 3 mi is below minimum of 5 mi",
        violations=["Visibility 3 mi is below minimum of 5 mi"],
        open_slots=SLOTS,
        availability={"monday": ["08:00-12:00"]},
    )
    values.update(overrides)
    return RescheduleContext(**values)


def ranked(*priorities, start=START) -> dict:
    return {
        "options": [
            {
                "date_time": (start + timedelta(hours=2 * i)).isoformat(),
                "reasoning": f"Option {i}",
                "weather_forecast": "Clear",
                "priority": p,
                "confidence": 0.7,
            }
            for i, p in enumerate(priorities)
        ]
    }


class FakeRanker:
    def __init__(self, reply=None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[tuple[str, str]] = []

    async def __call__(self, system: str, user: str) -> dict:
        self.prompts.append((system, user))
        if self.error:
            raise self.error
        return self.reply


async def test_rank_returns_options_sorted_by_priority():
    ranker = FakeRanker(ranked(3, 1, 2))
    options = await RescheduleAdvisor(ranker).rank(make_context())

    assert [o.priority for o in options] == [1, 2, 3]
    assert options[0].date_time == START + timedelta(hours=2)
    assert len(ranker.prompts) == 1


async def test_rank_requires_open_slots():
    ranker = FakeRanker(ranked(1, 2, 3))
    with pytest.raises(ValidationError):
        await RescheduleAdvisor(ranker).rank(make_context(open_slots=[]))
    assert ranker.prompts == []


@pytest.mark.parametrize(
    "reply",
    [
        ranked(1, 2),
        ranked(1, 2, 3, 1),
        ranked(1, 2, 4),
        {"options": "soon"},
        {},
    ],
)
async def test_rank_rejects_replies_that_break_the_contract(reply):
    with pytest.raises(ExternalServiceError) as exc_info:
        await RescheduleAdvisor(FakeRanker(reply)).rank(make_context())
    assert exc_info.value.provider == "llm"


async def test_ranker_failure_is_external_service_error():
    advisor = RescheduleAdvisor(FakeRanker(error=RuntimeError("No LLM provider configured")))
    with pytest.raises(ExternalServiceError, match="Could not generate reschedule options"):
        await advisor.rank(make_context())


async def test_options_outside_open_slots_are_logged(caplog):
    reply = ranked(1, 2, 3, start=START + timedelta(days=30))
    with caplog.at_level(logging.WARNING):
        options = await RescheduleAdvisor(FakeRanker(reply)).rank(make_context())
    assert len(options) == 3
    assert "is not an open slot" in caplog.text


async def test_naive_option_times_are_read_as_utc():
    reply = ranked(1, 2, 3)
    for option in reply["options"]:
        option["date_time"] = option["date_time"].replace("+00:00", "")
    options = await RescheduleAdvisor(FakeRanker(reply)).rank(make_context())
    assert options[0].date_time == START


def test_prompt_sections():
    prompt = RescheduleAdvisor(FakeRanker()).build_prompt(make_context())

    assert "ORIGINAL FLIGHT" in prompt
    assert "- Route: KAUS -> KGTU" in prompt
    assert "WEATHER CONFLICT" in prompt
    assert "TRAINING REQUIREMENTS" in prompt
    assert "AVAILABLE SLOTS (5)" in prompt
    assert f"1. {START.isoformat()}" in prompt
    assert "- monday: 08:00-12:00" in prompt


def test_prompt_without_preferences():
    prompt = RescheduleAdvisor(FakeRanker()).build_prompt(make_context(availability={}, destination=None))
    assert "- None specified" in prompt
    assert "- Route: KAUS\n" in prompt


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


async def test_llm_client_without_providers():
    client = LLMClient()
    assert client.available is False
    with pytest.raises(RuntimeError, match="No LLM provider configured"):
        await client.complete("system", "user")


async def test_complete_json_rejects_non_objects(monkeypatch):
    client = LLMClient()

    async def fake_complete(**kwargs):
        return "```json\n[1, 2]\n```"

    monkeypatch.setattr(client, "complete", fake_complete)
    with pytest.raises(ValueError):
        await client.complete_json("system", "user")
