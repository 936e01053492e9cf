"""Flights router: booking lifecycle, weather checks and rescheduling."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.database import get_db
from flightguard.dependencies import get_current_user
from flightguard.models.user import User
from flightguard.schemas.booking import (
    BookingAction,
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    HistoryEntryResponse,
    RescheduleOptionsResult,
    RescheduleResult,
    RescheduleSelection,
)
from flightguard.schemas.briefing import BriefingResponse
from flightguard.schemas.weather import WeatherCheckResponse
from flightguard.services.booking_service import booking_service
from flightguard.services.flight_history_service import flight_history_service
from flightguard.services.reschedule_service import ensure_participant, reschedule_service
from flightguard.services.weather_briefing_service import weather_briefing_service

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=201)
async def create_flight(
    req: BookingCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Book a flight after checking instructor, aircraft and student availability."""
    return await booking_service.create_booking(db, req, actor_id=user.id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_flight(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return booking


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_flight(
    booking_id: uuid.UUID,
    req: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await booking_service.update_booking(db, booking_id, req, actor_id=user.id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_flight(
    booking_id: uuid.UUID,
    req: BookingAction,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await booking_service.cancel_booking(
        db, booking_id, actor_id=user.id, reason=req.reason, expected_version=req.expected_version
    )


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_flight(
    booking_id: uuid.UUID,
    req: BookingAction,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await booking_service.complete_booking(db, booking_id, actor_id=user.id, expected_version=req.expected_version)


@router.post("/{booking_id}/hold", response_model=BookingResponse)
async def hold_flight(
    booking_id: uuid.UUID,
    req: BookingAction,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await booking_service.place_on_hold(
        db, booking_id, actor_id=user.id, reason=req.reason, expected_version=req.expected_version
    )


@router.post("/{booking_id}/release", response_model=BookingResponse)
async def release_flight(
    booking_id: uuid.UUID,
    req: BookingAction,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await booking_service.release_hold(
        db, booking_id, actor_id=user.id, reason=req.reason, expected_version=req.expected_version
    )


@router.get("/{booking_id}/history", response_model=list[HistoryEntryResponse])
async def flight_history(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking = await booking_service.get_booking(db, booking_id)
    ensure_participant(booking, user)
    return await flight_history_service.get_history(db, booking_id)


@router.post("/{booking_id}/weather-check", response_model=WeatherCheckResponse)
async def check_flight_weather(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Run a weather check now and apply the verdict to the booking."""
    result, _ = await reschedule_service.run_manual_check(db, booking_id, user)
    return WeatherCheckResponse(
        is_safe=result.is_safe,
        reason=result.reason,
        violations=result.violations,
        weather_data=result.weather_data,
    )


@router.get("/{booking_id}/briefing", response_model=BriefingResponse)
async def flight_briefing(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await weather_briefing_service.briefing_for_booking(db, booking_id, user)


@router.get("/{booking_id}/reschedule-options", response_model=RescheduleOptionsResult)
async def reschedule_options(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Three ranked alternative slots for a weather-affected flight."""
    return await reschedule_service.generate_options(db, booking_id, user)


@router.post("/{booking_id}/reschedule", response_model=RescheduleResult)
async def confirm_reschedule(
    booking_id: uuid.UUID,
    req: RescheduleSelection,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    outcome = await reschedule_service.confirm(db, booking_id, req, user)
    return RescheduleResult(
        original_booking=BookingResponse.model_validate(outcome.original),
        new_booking=BookingResponse.model_validate(outcome.new_booking),
        reschedule_event_id=outcome.event.id,
    )
