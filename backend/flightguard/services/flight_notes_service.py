"""Flight notes: pre-flight plans, debriefs and general remarks on a booking.

Any participant of a booking may read and add notes. Only the author may
edit a note; the author or an admin may delete it.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.database import utcnow
from flightguard.models.enums import NoteType, UserRole
from flightguard.models.note import FlightNote
from flightguard.models.user import User
from flightguard.services.booking_service import booking_service
from flightguard.services.exceptions import AuthorizationError, NotFoundError, ValidationError
from flightguard.services.reschedule_service import ensure_participant

logger = logging.getLogger(__name__)


def _clean(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Content is required")
    return content


def _note_type(value: NoteType | str) -> str:
    try:
        return NoteType(value).value
    except ValueError:
        raise ValidationError("Invalid note type", details={"allowed": [t.value for t in NoteType]})


class FlightNotesService:
    async def list_notes(self, db: AsyncSession, booking_id: uuid.UUID, user: User) -> list[FlightNote]:
        """Notes for a booking, newest first."""
        booking = await booking_service.get_booking(db, booking_id)
        ensure_participant(booking, user)
        result = await db.execute(
            select(FlightNote)
            .where(FlightNote.booking_id == booking_id)
            .order_by(FlightNote.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_note(
        self,
        db: AsyncSession,
        booking_id: uuid.UUID,
        user: User,
        note_type: NoteType | str,
        content: str,
    ) -> FlightNote:
        booking = await booking_service.get_booking(db, booking_id)
        ensure_participant(booking, user)
        note = FlightNote(
            booking_id=booking.id,
            author_id=user.id,
            note_type=_note_type(note_type),
            content=_clean(content),
        )
        note.author = user
        db.add(note)
        await db.commit()
        logger.info(f"Note {note.note_type} added to booking {booking_id} by {user.id}")
        return note

    async def get_note(self, db: AsyncSession, note_id: uuid.UUID) -> FlightNote:
        note = (await db.execute(select(FlightNote).where(FlightNote.id == note_id))).scalar_one_or_none()
        if not note:
            raise NotFoundError("Note not found")
        return note

    async def update_note(self, db: AsyncSession, note_id: uuid.UUID, user: User, content: str) -> FlightNote:
        note = await self.get_note(db, note_id)
        if note.author_id != user.id:
            raise AuthorizationError("You can only update your own notes")
        note.content = _clean(content)
        note.updated_at = utcnow()
        await db.commit()
        return note

    async def delete_note(self, db: AsyncSession, note_id: uuid.UUID, user: User) -> None:
        note = await self.get_note(db, note_id)
        if note.author_id != user.id and user.role != UserRole.ADMIN.value:
            raise AuthorizationError("You can only delete your own notes")
        await db.delete(note)
        await db.commit()
        logger.info(f"Note {note_id} deleted by {user.id}")


# Singleton
flight_notes_service = FlightNotesService()
