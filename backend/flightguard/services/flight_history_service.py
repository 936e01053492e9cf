"""Flight history: append-only audit trail for booking changes."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.models.booking import FlightHistory
from flightguard.models.enums import HistoryAction

logger = logging.getLogger(__name__)


class FlightHistoryService:
    """Writes and reads FlightHistory rows. Writes join the caller's transaction."""

    async def log_action(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        action: HistoryAction,
        actor_id: uuid.UUID | None,
        changes: dict | None = None,
        notes: str | None = None,
    ) -> FlightHistory:
        entry = FlightHistory(
            booking_id=booking_id,
            action=action.value,
            changed_by=actor_id,
            changes=changes,
            notes=notes,
        )
        db.add(entry)
        await db.flush()
        logger.debug(f"History: {action.value} on booking {booking_id} by {actor_id or 'system'}")
        return entry

    async def get_history(self, db: AsyncSession, booking_id: uuid.UUID) -> list[FlightHistory]:
        result = await db.execute(
            select(FlightHistory)
            .where(FlightHistory.booking_id == booking_id)
            .order_by(FlightHistory.created_at.desc())
        )
        return list(result.scalars().all())


# Singleton
flight_history_service = FlightHistoryService()
