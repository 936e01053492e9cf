"""In-memory TTL cache for generated weather briefings.

Keys are exact ``(location name, ISO UTC instant, training level)`` triples.
Entries expire on read; ``invalidate`` drops every entry for a location when
fresh weather is recorded there. There is no size bound.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from flightguard.config import settings
from flightguard.schemas.briefing import WeatherBriefing

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


@dataclass
class _Entry:
    briefing: WeatherBriefing
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BriefingCache:
    def __init__(self, ttl: timedelta = timedelta(hours=1), clock: Callable[[], datetime] = _utcnow):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}

    @staticmethod
    def make_key(location_name: str, date_time: datetime, training_level: str) -> CacheKey:
        level = getattr(training_level, "value", training_level)
        return (location_name, date_time.astimezone(timezone.utc).isoformat(), level)

    def get(self, location_name: str, date_time: datetime, training_level: str) -> WeatherBriefing | None:
        key = self.make_key(location_name, date_time, training_level)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.briefing

    def set(self, location_name: str, date_time: datetime, training_level: str, briefing: WeatherBriefing) -> None:
        key = self.make_key(location_name, date_time, training_level)
        self._entries[key] = _Entry(briefing=briefing, expires_at=self._clock() + self._ttl)

    def invalidate(self, location_name: str) -> int:
        """Drop every entry for this location; returns how many were removed."""
        stale = [key for key in self._entries if key[0] == location_name]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Briefing cache: invalidated {len(stale)} entries for {location_name}")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Singleton
briefing_cache = BriefingCache(ttl=timedelta(minutes=settings.briefing_cache_ttl_minutes))
