"""Seed script for the FlightGuard development database."""

import asyncio
import json
import logging

from sqlalchemy import select

from flightguard.database import async_session_factory, init_db
from flightguard.models.enums import TrainingLevel, UserRole
from flightguard.models.fleet import Aircraft, Instructor, Student
from flightguard.models.user import User

logger = logging.getLogger(__name__)

# ── People ─────────────────────────────────────────────────────────────────────

ADMIN = {"email": "admin@flightguard.dev", "name": "Dispatch Admin"}

INSTRUCTORS = [
    {"email": "mreyes@flightguard.dev", "name": "Maria Reyes", "phone": "+1-512-555-0140"},
    {"email": "dokafor@flightguard.dev", "name": "Daniel Okafor", "phone": "+1-512-555-0141"},
]

STUDENTS = [
    {
        "email": "alex@flightguard.dev",
        "name": "Alex Kim",
        "phone": "+1-512-555-0101",
        "training_level": TrainingLevel.STUDENT_PILOT,
        "availability": {"monday": ["08:00-12:00"], "wednesday": ["14:00-18:00"], "saturday": ["08:00-18:00"]},
    },
    {
        "email": "jordan@flightguard.dev",
        "name": "Jordan Patel",
        "phone": "+1-512-555-0102",
        "training_level": TrainingLevel.PRIVATE_PILOT,
        "availability": {"tuesday": ["10:00-16:00"], "thursday": ["10:00-16:00"]},
    },
    {
        "email": "sam@flightguard.dev",
        "name": "Sam Rivera",
        "phone": "+1-512-555-0103",
        "training_level": TrainingLevel.INSTRUMENT_RATED,
        "availability": {},
    },
]

# ── Fleet ──────────────────────────────────────────────────────────────────────

AIRCRAFT = [
    ("N172SP", "Cessna 172S Skyhawk"),
    ("N738FG", "Cessna 172N Skyhawk"),
    ("N28PA", "Piper PA-28-181 Archer"),
]


async def seed():
    async with async_session_factory() as db:
        result = await db.execute(select(User).limit(1))
        if result.scalar_one_or_none():
            logger.info("Database already seeded. Skipping.")
            return

        db.add(User(email=ADMIN["email"], name=ADMIN["name"], role=UserRole.ADMIN.value))

        for person in INSTRUCTORS:
            user = User(email=person["email"], name=person["name"], role=UserRole.INSTRUCTOR.value)
            db.add(user)
            await db.flush()
            db.add(Instructor(user_id=user.id, name=person["name"], phone=person["phone"]))

        for person in STUDENTS:
            user = User(email=person["email"], name=person["name"], role=UserRole.STUDENT.value)
            db.add(user)
            await db.flush()
            db.add(Student(
                user_id=user.id,
                name=person["name"],
                phone=person["phone"],
                training_level=person["training_level"].value,
                availability=json.dumps(person["availability"]),
            ))

        for tail_number, model in AIRCRAFT:
            db.add(Aircraft(tail_number=tail_number, model=model))

        await db.commit()
        logger.info(
            f"Seeded {1 + len(INSTRUCTORS) + len(STUDENTS)} users, "
            f"{len(STUDENTS)} students, {len(INSTRUCTORS)} instructors, {len(AIRCRAFT)} aircraft"
        )


async def main():
    await init_db()
    await seed()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
