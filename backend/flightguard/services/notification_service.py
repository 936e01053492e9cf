"""Notification service: in-app notifications for flight events and the per-user inbox."""

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.models.enums import NotificationType
from flightguard.models.notification import Notification
from flightguard.services.exceptions import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


def _fmt_when(when: datetime) -> str:
    return when.strftime("%a %b %d, %Y %H:%M UTC")


class NotificationService:
    """One send_* method per flight event, written in the caller's transaction.

    The inbox methods below commit on their own.
    """

    async def send_flight_confirmed(
        self, db: AsyncSession, user_id: uuid.UUID, booking_id: uuid.UUID, scheduled_date: datetime
    ) -> Notification:
        return await self._create(
            db,
            user_id=user_id,
            booking_id=booking_id,
            type=NotificationType.FLIGHT_CONFIRMED,
            title="Flight Confirmed",
            body=f"Your flight on {_fmt_when(scheduled_date)} has been confirmed.",
        )

    async def send_weather_alert(
        self, db: AsyncSession, user_id: uuid.UUID, booking_id: uuid.UUID,
        scheduled_date: datetime, reason: str
    ) -> Notification:
        return await self._create(
            db,
            user_id=user_id,
            booking_id=booking_id,
            type=NotificationType.WEATHER_ALERT,
            title="Weather Alert",
            body=(
                f"Your flight on {_fmt_when(scheduled_date)} has been placed on weather hold. "
                f"{reason}"
            ),
        )

    async def send_reschedule_options(
        self, db: AsyncSession, user_id: uuid.UUID, booking_id: uuid.UUID, option_count: int
    ) -> Notification:
        return await self._create(
            db,
            user_id=user_id,
            booking_id=booking_id,
            type=NotificationType.RESCHEDULE_OPTIONS,
            title="Reschedule Options Available",
            body=f"{option_count} alternative times are available for your weather-affected flight.",
        )

    async def send_reschedule_confirmed(
        self, db: AsyncSession, user_id: uuid.UUID, booking_id: uuid.UUID,
        old_date: datetime, new_date: datetime
    ) -> Notification:
        return await self._create(
            db,
            user_id=user_id,
            booking_id=booking_id,
            type=NotificationType.RESCHEDULE_CONFIRMED,
            title="Flight Rescheduled",
            body=f"Your flight has been moved from {_fmt_when(old_date)} to {_fmt_when(new_date)}.",
        )

    async def send_flight_cancelled(
        self, db: AsyncSession, user_id: uuid.UUID, booking_id: uuid.UUID,
        scheduled_date: datetime, reason: str | None = None
    ) -> Notification:
        body = f"Your flight on {_fmt_when(scheduled_date)} has been cancelled."
        if reason:
            body = f"{body} Reason: {reason}"
        return await self._create(
            db,
            user_id=user_id,
            booking_id=booking_id,
            type=NotificationType.FLIGHT_CANCELLED,
            title="Flight Cancelled",
            body=body,
        )

    async def _create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        booking_id: uuid.UUID | None,
        type: NotificationType,
        title: str,
        body: str,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            booking_id=booking_id,
            type=type.value,
            title=title,
            body=body,
        )
        db.add(notification)
        await db.flush()
        logger.info(f"Notification created: {type.value} for user {user_id}")
        return notification

    # ---------- Inbox ----------

    async def list_for_user(
        self, db: AsyncSession, user_id: uuid.UUID, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        return result.scalar() or 0

    async def mark_read(self, db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        result = await db.execute(select(Notification).where(Notification.id == notification_id))
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != user_id:
            raise AuthorizationError("You can only update your own notifications")
        notification.is_read = True
        await db.commit()
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await db.commit()
        return result.rowcount


# Singleton
notification_service = NotificationService()
