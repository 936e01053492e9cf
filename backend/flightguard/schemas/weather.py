from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from flightguard.models.enums import TrainingLevel
from flightguard.services.exceptions import ValidationError


class Location(BaseModel):
    name: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class WeatherConditions(BaseModel):
    """Immutable weather snapshot. ``ceiling`` of None means clear skies."""

    model_config = ConfigDict(frozen=True)

    visibility: float = Field(ge=0)  # statute miles
    ceiling: float | None = None  # feet AGL
    wind_speed: float = Field(ge=0)  # knots
    wind_direction: float | None = None  # degrees
    temperature: float  # Fahrenheit
    humidity: float
    precipitation: bool = False
    thunderstorms: bool = False
    icing: bool = False
    cloud_cover: float | None = None  # percent
    description: str | None = None


class WeatherData(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: Location
    conditions: WeatherConditions
    timestamp: datetime


class LocationCheckRequest(BaseModel):
    location: Location
    training_level: TrainingLevel


class WeatherCheckResponse(BaseModel):
    is_safe: bool
    reason: str
    violations: list[str]
    weather_data: WeatherData


class MonitorRunResponse(BaseModel):
    total: int
    checks_completed: int
    conflicts_detected: int
    cleared: int
    errors: int
    duration_ms: int


def parse_location(raw: str | None, field: str = "location") -> Location | None:
    """Parse a stored Location JSON string; malformed text raises ValidationError."""
    if raw is None:
        return None
    try:
        return Location.model_validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Stored {field} is not a valid location",
            details={"field": field, "errors": e.errors(include_url=False)},
        ) from e


def serialize_location(location: Location | None) -> str | None:
    if location is None:
        return None
    return location.model_dump_json()
