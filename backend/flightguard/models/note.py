import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flightguard.database import Base, UTCDateTime, utcnow
from flightguard.models.user import User


class FlightNote(Base):
    """Free-text briefing/debrief notes attached to a booking by a participant."""

    __tablename__ = "flight_notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flight_bookings.id"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    note_type: Mapped[str] = mapped_column(String(20), nullable=False, default="GENERAL")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    author: Mapped[User] = relationship(lazy="selectin")

    @property
    def author_name(self) -> str:
        return self.author.name
