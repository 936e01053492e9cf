from datetime import datetime, timedelta, timezone

from flightguard.models.enums import TrainingLevel
from flightguard.services.briefing_cache import BriefingCache

from tests.helpers import make_briefing

WHEN = datetime(2030, 5, 1, 15, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def test_get_returns_stored_briefing_until_ttl():
    clock = Clock()
    cache = BriefingCache(ttl=timedelta(hours=1), clock=clock)
    briefing = make_briefing()
    cache.set("KAUS", WHEN, "STUDENT_PILOT", briefing)

    clock.now += timedelta(minutes=59)
    assert cache.get("KAUS", WHEN, "STUDENT_PILOT") == briefing

    clock.now += timedelta(minutes=1)
    assert cache.get("KAUS", WHEN, "STUDENT_PILOT") is None
    assert len(cache) == 0


def test_keys_are_exact():
    cache = BriefingCache()
    cache.set("KAUS", WHEN, "STUDENT_PILOT", make_briefing())

    assert cache.get("KAUS", WHEN, "PRIVATE_PILOT") is None
    assert cache.get("KAUS", WHEN + timedelta(minutes=1), "STUDENT_PILOT") is None
    assert cache.get("KGTU", WHEN, "STUDENT_PILOT") is None


def test_keys_normalize_offsets_and_enum_levels():
    cache = BriefingCache()
    cache.set("KAUS", WHEN, TrainingLevel.STUDENT_PILOT, make_briefing())

    central = WHEN.astimezone(timezone(timedelta(hours=-5)))
    assert cache.get("KAUS", central, "STUDENT_PILOT") is not None


def test_invalidate_drops_every_entry_for_a_location():
    cache = BriefingCache()
    cache.set("KAUS", WHEN, "STUDENT_PILOT", make_briefing())
    cache.set("KAUS", WHEN + timedelta(hours=2), "PRIVATE_PILOT", make_briefing())
    cache.set("KGTU", WHEN, "STUDENT_PILOT", make_briefing())

    assert cache.invalidate("KAUS") == 2
    assert cache.invalidate("KAUS") == 0
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
