"""
Project management commands.

Usage:
    event-registry-manage create-tables
    event-registry-manage reset-db
    event-registry-manage seed-db
    event-registry-manage check-db
"""
import argparse
import logging
from datetime import timedelta

from sqlalchemy import func, select

from event_registry.core.clock import utcnow
from event_registry.core.logging_config import setup_logging
from event_registry.core.security import hash_password
from event_registry.database.db import Base, SessionLocal, engine, transaction
from event_registry.models.events import Event
from event_registry.models.registrations import Registration  # noqa: F401
from event_registry.models.users import Role, User

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"username": "admin", "password": "admin123", "email": "admin@example.com",
     "full_name": "Admin User", "roles": [Role.ADMIN.value]},
    {"username": "organizer", "password": "organizer123", "email": "organizer@example.com",
     "full_name": "Event Organizer", "roles": [Role.ORGANIZER.value]},
    {"username": "user", "password": "user123", "email": "user@example.com",
     "full_name": "Regular User", "roles": [Role.USER.value]},
]

# (name, description, days from now, duration, location, category, capacity, published)
SEED_EVENTS = [
    ("Summer Music Festival", "Join us for a day of live music performances from top artists.",
     30, timedelta(hours=8), "Central Park", "Music", 1000, True),
    ("Tech Innovation Summit", "A conference showcasing the latest advancements in technology.",
     60, timedelta(days=2), "Convention Center", "Technology", 500, True),
    ("Creative Writing Workshop", "Learn writing techniques from published authors.",
     15, timedelta(hours=4), "Community Library", "Education", 30, True),
    ("Upcoming Product Launch", "Exclusive preview of our newest product line.",
     45, timedelta(hours=3), "Company Headquarters", "Business", 100, False),
]


def create_tables():
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created")


def reset_db():
    confirm = input("This deletes ALL data. Continue? (yes/no): ")
    if confirm.lower() != "yes":
        logger.info("Cancelled")
        return

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database reset")


def seed_db(db=None) -> bool:
    """Insert sample users and events into an empty database. Returns True when seeded."""
    db = db or SessionLocal()
    try:
        if db.scalar(select(func.count(User.id))):
            logger.info("Users already exist, skipping seed")
            return False

        now = utcnow()
        with transaction(db):
            users = {}
            for data in SEED_USERS:
                user = User(
                    username=data["username"],
                    email=data["email"],
                    hashed_password=hash_password(data["password"]),
                    full_name=data["full_name"],
                    roles=data["roles"],
                )
                db.add(user)
                users[user.username] = user

            for name, description, days, duration, location, category, capacity, published in SEED_EVENTS:
                start_time = now + timedelta(days=days)
                db.add(Event(
                    name=name,
                    description=description,
                    start_time=start_time,
                    end_time=start_time + duration,
                    location=location,
                    category=category,
                    capacity=capacity,
                    published=published,
                    registered_count=0,
                    organizer=users["organizer"],
                ))

        logger.info("Seeded %d users and %d events", len(SEED_USERS), len(SEED_EVENTS))
        return True
    finally:
        db.close()


def check_db():
    db = SessionLocal()
    try:
        users = db.scalars(select(User).order_by(User.id)).all()
        events = db.scalars(select(Event).order_by(Event.id)).all()
        print(f"Users: {len(users)}")
        for user in users:
            print(f"  [{user.id}] {user.username} <{user.email}> roles={','.join(user.roles)}")
        print(f"Events: {len(events)}")
        for event in events:
            state = "published" if event.published else "draft"
            print(f"  [{event.id}] {event.name} ({state}) {event.registered_count}/{event.capacity}")
    finally:
        db.close()


COMMANDS = {
    "create-tables": create_tables,
    "reset-db": reset_db,
    "seed-db": seed_db,
    "check-db": check_db,
}


def main(argv=None):
    setup_logging()
    parser = argparse.ArgumentParser(description="Event registry management commands")
    parser.add_argument("command", choices=sorted(COMMANDS), help="Command to run")
    args = parser.parse_args(argv)

    if args.command != "create-tables":
        create_tables()
    COMMANDS[args.command]()


if __name__ == "__main__":
    main()
