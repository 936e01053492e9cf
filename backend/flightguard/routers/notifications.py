"""Notifications router: the caller's in-app inbox."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.database import get_db
from flightguard.dependencies import get_current_user
from flightguard.models.user import User
from flightguard.schemas.notification import MarkAllReadResponse, NotificationListResponse, NotificationResponse
from flightguard.services.notification_service import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Get the user's notifications, newest first, with the unread total."""
    notifications = await notification_service.list_for_user(db, user.id, unread_only=unread_only, limit=limit)
    unread_count = await notification_service.unread_count(db, user.id)
    return {"notifications": notifications, "unread_count": unread_count}


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = await notification_service.mark_all_read(db, user.id)
    return {"updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await notification_service.mark_read(db, notification_id, user.id)
