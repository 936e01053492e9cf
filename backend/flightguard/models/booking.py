import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flightguard.database import Base, UTCDateTime, utcnow
from flightguard.models.fleet import Aircraft, Instructor, Student


class FlightBooking(Base):
    __tablename__ = "flight_bookings"
    __table_args__ = (
        Index("ix_flight_bookings_status_date", "status", "scheduled_date"),
        Index("ix_flight_bookings_instructor_date", "instructor_id", "scheduled_date"),
        Index("ix_flight_bookings_aircraft_date", "aircraft_id", "scheduled_date"),
        Index("ix_flight_bookings_student_date", "student_id", "scheduled_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("students.id"), nullable=False)
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("instructors.id"), nullable=False)
    aircraft_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("aircraft.id"), nullable=False)
    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    # Serialized Location JSON
    departure_location: Mapped[str] = mapped_column(Text, nullable=False)
    destination_location: Mapped[str | None] = mapped_column(Text)
    flight_type: Mapped[str] = mapped_column(String(20), nullable=False, default="TRAINING")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="CONFIRMED")
    notes: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    last_modified_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    student: Mapped[Student] = relationship(lazy="selectin")
    instructor: Mapped[Instructor] = relationship(lazy="selectin")
    aircraft: Mapped[Aircraft] = relationship(lazy="selectin")

    # Every UPDATE is conditional on the version this session read
    __mapper_args__ = {"version_id_col": version}


class WeatherCheck(Base):
    """Append-only log of safety verdicts; newest row is authoritative."""

    __tablename__ = "weather_checks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flight_bookings.id"), nullable=False, index=True
    )
    weather_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    is_safe: Mapped[bool] = mapped_column(Boolean, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    violations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)


class RescheduleEvent(Base):
    __tablename__ = "reschedule_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    original_booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flight_bookings.id"), nullable=False, index=True
    )
    new_booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("flight_bookings.id"))
    suggested_options: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    selected_option: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)


class FlightHistory(Base):
    """Audit trail. ``changed_by`` is NULL for system actions (weather monitor)."""

    __tablename__ = "flight_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("flight_bookings.id"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))
    changes: Mapped[dict | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
