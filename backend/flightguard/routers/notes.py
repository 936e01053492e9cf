"""Notes router: per-flight notes and note edits."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.database import get_db
from flightguard.dependencies import get_current_user
from flightguard.models.user import User
from flightguard.schemas.note import FlightNoteCreate, FlightNoteResponse, FlightNoteUpdate
from flightguard.services.flight_notes_service import flight_notes_service

router = APIRouter()


@router.get("/flights/{booking_id}/notes", response_model=list[FlightNoteResponse])
async def list_flight_notes(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await flight_notes_service.list_notes(db, booking_id, user)


@router.post("/flights/{booking_id}/notes", response_model=FlightNoteResponse, status_code=201)
async def create_flight_note(
    booking_id: uuid.UUID,
    req: FlightNoteCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Attach a note to a flight (participants only)."""
    return await flight_notes_service.create_note(db, booking_id, user, req.note_type, req.content)


@router.put("/notes/{note_id}", response_model=FlightNoteResponse)
async def update_flight_note(
    note_id: uuid.UUID,
    req: FlightNoteUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await flight_notes_service.update_note(db, note_id, user, req.content)


@router.delete("/notes/{note_id}")
async def delete_flight_note(
    note_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await flight_notes_service.delete_note(db, note_id, user)
    return {"ok": True}
