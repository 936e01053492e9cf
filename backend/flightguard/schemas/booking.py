import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from flightguard.models.enums import FlightType
from flightguard.schemas.weather import Location


def _require_tz(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("datetime must include a timezone offset")
    return value


class BookingCreate(BaseModel):
    student_id: uuid.UUID
    instructor_id: uuid.UUID
    aircraft_id: uuid.UUID
    scheduled_date: datetime
    departure_location: Location
    destination_location: Location | None = None
    flight_type: FlightType = FlightType.TRAINING
    notes: str | None = None

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_tz(cls, value: datetime) -> datetime:
        return _require_tz(value)


class BookingUpdate(BaseModel):
    expected_version: int | None = None
    scheduled_date: datetime | None = None
    departure_location: Location | None = None
    destination_location: Location | None = None
    flight_type: FlightType | None = None
    notes: str | None = None

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_tz(cls, value: datetime | None) -> datetime | None:
        return None if value is None else _require_tz(value)


class BookingAction(BaseModel):
    expected_version: int | None = None
    reason: str | None = None


class BookingResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    instructor_id: uuid.UUID
    aircraft_id: uuid.UUID
    scheduled_date: datetime
    departure_location: Location
    destination_location: Location | None
    flight_type: str
    status: str
    notes: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    @field_validator("departure_location", mode="before")
    @classmethod
    def _parse_departure(cls, value):
        return Location.model_validate_json(value) if isinstance(value, str) else value

    @field_validator("destination_location", mode="before")
    @classmethod
    def _parse_destination(cls, value):
        return Location.model_validate_json(value) if isinstance(value, str) else value

    model_config = {"from_attributes": True}


class HistoryEntryResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    action: str
    changed_by: uuid.UUID | None
    changes: dict | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TimeSlot(BaseModel):
    date_time: datetime
    available: bool
    reason: str | None = None


class RescheduleOption(BaseModel):
    date_time: datetime
    reasoning: str
    weather_forecast: str
    priority: int = Field(ge=1, le=3)
    confidence: float = Field(ge=0, le=1)

    @field_validator("date_time")
    @classmethod
    def _date_time_utc(cls, value: datetime) -> datetime:
        # Rankers sometimes drop the offset; slots are always generated in UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class RescheduleOptionsResponse(BaseModel):
    """Ranking output contract: exactly three options."""

    options: list[RescheduleOption] = Field(min_length=3, max_length=3)


class RescheduleOptionsResult(BaseModel):
    booking_id: uuid.UUID
    conflict_reason: str
    violations: list[str]
    options: list[RescheduleOption]
    available_slots: int


class RescheduleSelection(BaseModel):
    selected_option: RescheduleOption
    suggested_options: list[RescheduleOption] = Field(default_factory=list)
    expected_version: int | None = None


class RescheduleResult(BaseModel):
    original_booking: BookingResponse
    new_booking: BookingResponse
    reschedule_event_id: uuid.UUID
