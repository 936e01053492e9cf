"""Weather monitor: periodic safety sweep over upcoming flights.

Each run re-checks every active booking departing within the horizon. One
booking's failure is logged and counted; the rest of the batch still runs.
"""

import logging
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.config import settings
from flightguard.database import utcnow
from flightguard.models.booking import FlightBooking
from flightguard.models.enums import ACTIVE_STATUSES
from flightguard.schemas.weather import parse_location
from flightguard.services.booking_service import BookingService, booking_service
from flightguard.services.briefing_cache import BriefingCache, briefing_cache
from flightguard.services.conflict_detection import ConflictDetectionService, conflict_detection_service

logger = logging.getLogger(__name__)


@dataclass
class MonitorRunSummary:
    total: int = 0
    checks_completed: int = 0
    conflicts_detected: int = 0
    cleared: int = 0
    errors: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class WeatherMonitor:
    def __init__(
        self,
        detector: ConflictDetectionService = conflict_detection_service,
        bookings: BookingService = booking_service,
        cache: BriefingCache = briefing_cache,
        horizon: timedelta = timedelta(hours=settings.weather_check_horizon_hours),
    ):
        self.detector = detector
        self.bookings = bookings
        self.cache = cache
        self.horizon = horizon

    async def upcoming_booking_ids(self, db: AsyncSession, now: datetime) -> list[uuid.UUID]:
        result = await db.execute(
            select(FlightBooking.id)
            .where(
                FlightBooking.status.in_(ACTIVE_STATUSES),
                FlightBooking.scheduled_date >= now,
                FlightBooking.scheduled_date <= now + self.horizon,
            )
            .order_by(FlightBooking.scheduled_date)
        )
        return list(result.scalars().all())

    async def run(self, db: AsyncSession, now: datetime | None = None) -> MonitorRunSummary:
        """Check every upcoming flight once.

        Raises only if the booking list itself cannot be read.
        """
        started = time.monotonic()
        now = now or utcnow()
        summary = MonitorRunSummary()

        booking_ids = await self.upcoming_booking_ids(db, now)
        summary.total = len(booking_ids)
        logger.info(f"Weather monitor: checking {summary.total} flights in the next {self.horizon}")

        for booking_id in booking_ids:
            try:
                await self._check_one(db, booking_id, summary)
            except Exception as e:
                summary.errors += 1
                logger.error(f"Weather monitor: check failed for booking {booking_id}: {e}", exc_info=True)
                await db.rollback()

        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Weather monitor complete: {summary.checks_completed}/{summary.total} checked, "
            f"{summary.conflicts_detected} new conflicts, {summary.cleared} cleared, "
            f"{summary.errors} errors in {summary.duration_ms}ms"
        )
        return summary

    async def _check_one(self, db: AsyncSession, booking_id: uuid.UUID, summary: MonitorRunSummary) -> None:
        booking = await self.bookings.get_booking(db, booking_id)
        departure = parse_location(booking.departure_location, "departure_location")

        result = await self.detector.check_booking_safety(db, booking_id)
        outcome = await self.bookings.apply_weather_verdict(db, booking_id, result, actor_id=None, source="monitor")
        self.cache.invalidate(departure.name)
        summary.checks_completed += 1

        if outcome.placed_on_hold:
            summary.conflicts_detected += 1
            logger.warning(f"Weather monitor: booking {booking_id} placed on hold: {result.reason}")
        elif outcome.cleared:
            summary.cleared += 1
            logger.info(f"Weather monitor: booking {booking_id} cleared for flight")


# Singleton
weather_monitor = WeatherMonitor()
