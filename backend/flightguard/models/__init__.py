from flightguard.models.booking import FlightBooking, FlightHistory, RescheduleEvent, WeatherCheck
from flightguard.models.enums import (
    BookingStatus,
    FlightType,
    HistoryAction,
    NoteType,
    NotificationType,
    RescheduleStatus,
    TrainingLevel,
    UserRole,
)
from flightguard.models.fleet import Aircraft, Instructor, Student
from flightguard.models.note import FlightNote
from flightguard.models.notification import Notification
from flightguard.models.user import User

__all__ = [
    "Aircraft",
    "BookingStatus",
    "FlightBooking",
    "FlightHistory",
    "FlightNote",
    "FlightType",
    "HistoryAction",
    "Instructor",
    "NoteType",
    "Notification",
    "RescheduleEvent",
    "RescheduleStatus",
    "Student",
    "TrainingLevel",
    "User",
    "UserRole",
    "WeatherCheck",
]
