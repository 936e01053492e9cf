"""Initial FlightGuard schema: people, fleet, bookings, weather checks, audit, notes

Revision ID: flightguard_001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "flightguard_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("training_level", sa.String(20), nullable=False),
        sa.Column("availability", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "instructors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "aircraft",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tail_number", sa.String(20), nullable=False, unique=True),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "flight_bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("instructor_id", sa.Uuid(), sa.ForeignKey("instructors.id"), nullable=False),
        sa.Column("aircraft_id", sa.Uuid(), sa.ForeignKey("aircraft.id"), nullable=False),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("departure_location", sa.Text(), nullable=False),
        sa.Column("destination_location", sa.Text()),
        sa.Column("flight_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id")),
        sa.Column("last_modified_by", sa.Uuid(), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_flight_bookings_status_date", "flight_bookings", ["status", "scheduled_date"])
    op.create_index("ix_flight_bookings_instructor_date", "flight_bookings", ["instructor_id", "scheduled_date"])
    op.create_index("ix_flight_bookings_aircraft_date", "flight_bookings", ["aircraft_id", "scheduled_date"])
    op.create_index("ix_flight_bookings_student_date", "flight_bookings", ["student_id", "scheduled_date"])

    op.create_table(
        "weather_checks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id"), nullable=False),
        sa.Column("weather_data", sa.JSON(), nullable=False),
        sa.Column("is_safe", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("violations", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_weather_checks_booking_id", "weather_checks", ["booking_id"])
    op.create_index("ix_weather_checks_created_at", "weather_checks", ["created_at"])

    op.create_table(
        "reschedule_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("original_booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id"), nullable=False),
        sa.Column("new_booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id")),
        sa.Column("suggested_options", sa.JSON(), nullable=False),
        sa.Column("selected_option", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_reschedule_events_original_booking_id", "reschedule_events", ["original_booking_id"])

    op.create_table(
        "flight_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id"), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("changed_by", sa.Uuid(), sa.ForeignKey("users.id")),
        sa.Column("changes", sa.JSON()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_flight_history_booking_id", "flight_history", ["booking_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id")),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "flight_notes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("flight_bookings.id"), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("note_type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_flight_notes_booking_id", "flight_notes", ["booking_id"])


def downgrade() -> None:
    op.drop_table("flight_notes")
    op.drop_table("notifications")
    op.drop_table("flight_history")
    op.drop_table("reschedule_events")
    op.drop_table("weather_checks")
    op.drop_table("flight_bookings")
    op.drop_table("aircraft")
    op.drop_table("instructors")
    op.drop_table("students")
    op.drop_table("users")
