"""Status and classification enums shared by models, schemas and services.

Columns store the plain ``.value`` strings so rows stay readable from SQL.
"""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


class TrainingLevel(str, enum.Enum):
    STUDENT_PILOT = "STUDENT_PILOT"
    PRIVATE_PILOT = "PRIVATE_PILOT"
    INSTRUMENT_RATED = "INSTRUMENT_RATED"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    WEATHER_HOLD = "WEATHER_HOLD"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


ACTIVE_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.WEATHER_HOLD.value)
TERMINAL_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)


class FlightType(str, enum.Enum):
    TRAINING = "TRAINING"
    SOLO = "SOLO"
    CROSS_COUNTRY = "CROSS_COUNTRY"


class RescheduleStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class HistoryAction(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class NotificationType(str, enum.Enum):
    FLIGHT_CONFIRMED = "FLIGHT_CONFIRMED"
    WEATHER_ALERT = "WEATHER_ALERT"
    RESCHEDULE_OPTIONS = "RESCHEDULE_OPTIONS"
    RESCHEDULE_CONFIRMED = "RESCHEDULE_CONFIRMED"
    FLIGHT_CANCELLED = "FLIGHT_CANCELLED"


class NoteType(str, enum.Enum):
    PRE_FLIGHT = "PRE_FLIGHT"
    POST_FLIGHT = "POST_FLIGHT"
    DEBRIEF = "DEBRIEF"
    GENERAL = "GENERAL"
    INSTRUCTOR_NOTES = "INSTRUCTOR_NOTES"
    STUDENT_NOTES = "STUDENT_NOTES"
