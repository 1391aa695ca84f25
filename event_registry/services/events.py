import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from event_registry.core.clock import Clock, utcnow
from event_registry.core.exceptions import InvalidStateError, NotFoundError
from event_registry.database.db import transaction
from event_registry.models.events import Event
from event_registry.models.users import User
from event_registry.schemas.events import EventCreate, EventUpdate

logger = logging.getLogger(__name__)


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError.for_resource("Event", "id", event_id)
    return event


def _get_organizer(db: Session, organizer_id: int) -> User:
    organizer = db.get(User, organizer_id)
    if organizer is None:
        raise NotFoundError.for_resource("User", "id", organizer_id)
    return organizer


def validate_event_dates(start_time: datetime, end_time: datetime, now: datetime) -> None:
    if start_time <= now:
        raise InvalidStateError("Event start time must be in the future")
    if end_time < start_time:
        raise InvalidStateError("Event end time must be after start time")


def list_events(db: Session, *, published_only: bool = False) -> list[Event]:
    stmt = select(Event).order_by(Event.start_time)
    if published_only:
        stmt = stmt.where(Event.published.is_(True))
    return list(db.scalars(stmt))


def list_events_by_organizer(db: Session, organizer_id: int) -> list[Event]:
    _get_organizer(db, organizer_id)
    stmt = select(Event).where(Event.organizer_id == organizer_id).order_by(Event.start_time)
    return list(db.scalars(stmt))


def search_events(
    db: Session,
    *,
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    on_date: Optional[date] = None,
) -> list[Event]:
    """Published events matching every filter given; omitted filters match all."""
    stmt = select(Event).where(Event.published.is_(True))
    if keyword:
        pattern = f"%{keyword}%"
        stmt = stmt.where(or_(Event.name.ilike(pattern), Event.description.ilike(pattern)))
    if category:
        stmt = stmt.where(Event.category == category)
    if on_date:
        day_start = datetime.combine(on_date, time.min)
        stmt = stmt.where(Event.start_time >= day_start, Event.start_time < day_start + timedelta(days=1))
    return list(db.scalars(stmt.order_by(Event.start_time)))


def create_event(db: Session, payload: EventCreate, *, organizer_id: int, clock: Clock = utcnow) -> Event:
    validate_event_dates(payload.start_time, payload.end_time, clock())
    organizer = _get_organizer(db, organizer_id)

    event = Event(
        name=payload.name,
        description=payload.description,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        category=payload.category,
        capacity=payload.capacity,
        published=False,
        registered_count=0,
        organizer=organizer,
    )
    with transaction(db):
        db.add(event)
    db.refresh(event)

    logger.info("Event created: id=%s name=%r organizer=%s", event.id, event.name, organizer.username)
    return event


def update_event(db: Session, event_id: int, payload: EventUpdate, *, clock: Clock = utcnow) -> Event:
    event = get_event(db, event_id)
    validate_event_dates(payload.start_time, payload.end_time, clock())

    if payload.capacity < event.registered_count:
        raise InvalidStateError(
            "Event capacity cannot be lower than the number of confirmed registrations"
        )

    with transaction(db):
        event.name = payload.name
        event.description = payload.description
        event.start_time = payload.start_time
        event.end_time = payload.end_time
        event.location = payload.location
        event.category = payload.category
        event.capacity = payload.capacity
    db.refresh(event)

    logger.info("Event updated: id=%s", event.id)
    return event


def delete_event(db: Session, event_id: int) -> None:
    event = get_event(db, event_id)
    with transaction(db):
        db.delete(event)
    logger.info("Event deleted: id=%s", event_id)


def publish_event(db: Session, event_id: int) -> Event:
    event = get_event(db, event_id)
    if event.published:
        raise InvalidStateError("Event is already published")

    with transaction(db):
        event.published = True
    db.refresh(event)

    logger.info("Event published: id=%s", event.id)
    return event


def unpublish_event(db: Session, event_id: int) -> Event:
    event = get_event(db, event_id)
    if not event.published:
        raise InvalidStateError("Event is already unpublished")

    with transaction(db):
        event.published = False
    db.refresh(event)

    logger.info("Event unpublished: id=%s", event.id)
    return event
