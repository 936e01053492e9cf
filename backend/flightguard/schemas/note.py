import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from flightguard.models.enums import NoteType


class FlightNoteCreate(BaseModel):
    note_type: NoteType = NoteType.GENERAL
    content: str = Field(min_length=1, max_length=5000)


class FlightNoteUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class FlightNoteResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    author_id: uuid.UUID
    author_name: str
    note_type: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
