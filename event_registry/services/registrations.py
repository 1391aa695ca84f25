"""
Registration lifecycle: register, cancel and delete while keeping every
event's confirmed-registration count within its capacity.

Cancelled registrations are kept, do not hold a seat and do not block a new
registration for the same user and event; registering again reactivates the
cancelled row.
"""
import logging
from datetime import datetime

import redis
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from event_registry.core import config
from event_registry.core.clock import Clock, utcnow
from event_registry.core.config import get_redis_url
from event_registry.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from event_registry.database.db import transaction
from event_registry.models.events import Event
from event_registry.models.registrations import Registration, RegistrationStatus
from event_registry.models.users import User

logger = logging.getLogger(__name__)


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError.for_resource("User", "id", user_id)
    return user


def _get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError.for_resource("Event", "id", event_id)
    return event


def find_registration(db: Session, user_id: int, event_id: int) -> Registration | None:
    return db.scalar(
        select(Registration).where(Registration.user_id == user_id, Registration.event_id == event_id)
    )


def register(db: Session, *, user_id: int, event_id: int, clock: Clock = utcnow) -> Registration:
    """
    Register a user for an event.

    A Redis lock serializes registrations per event; the seat itself is
    claimed with a conditional UPDATE so the capacity holds even without it.
    """
    redis_client = get_redis_client()
    lock_key = f"event_lock:{event_id}"
    lock = redis_client.lock(
        lock_key,
        timeout=config.EVENT_LOCK_TIMEOUT,
        blocking_timeout=config.EVENT_LOCK_BLOCKING_TIMEOUT,
    )

    try:
        acquired = lock.acquire(blocking=True)
    except redis.exceptions.LockError:
        acquired = False
    if not acquired:
        raise ConflictError("Event is busy, please try again.")

    try:
        with transaction(db):
            registration = _register_in_transaction(db, user_id, event_id, clock())
    finally:
        try:
            lock.release()
        except redis.exceptions.LockNotOwnedError:
            # Expired while we held it; the transaction outcome still stands.
            logger.warning("Lock %s expired before it was released", lock_key)

    db.refresh(registration)
    logger.info(
        "Registration confirmed: id=%s user=%s event=%s", registration.id, user_id, event_id
    )
    return registration


def _register_in_transaction(db: Session, user_id: int, event_id: int, now: datetime) -> Registration:
    user = _get_user(db, user_id)
    event = _get_event(db, event_id)

    if not event.published:
        logger.warning("Registration rejected, event %s is unpublished", event_id)
        raise InvalidStateError("Cannot register for an unpublished event")

    existing = find_registration(db, user_id, event_id)
    if existing is not None and existing.is_active:
        raise ConflictError("User is already registered for this event")

    if not event.has_available_spots():
        logger.warning("Registration rejected, event %s is full", event_id)
        raise InvalidStateError("Event is at full capacity")

    if event.start_time <= now:
        raise InvalidStateError("Cannot register for past events")

    _claim_seat(db, event_id)

    if existing is not None:
        existing.status = RegistrationStatus.CONFIRMED.value
        existing.registration_time = now
        registration = existing
    else:
        registration = Registration(
            user=user,
            event=event,
            registration_time=now,
            status=RegistrationStatus.CONFIRMED.value,
        )
        db.add(registration)

    db.flush()  # gets registration.id
    return registration


def _claim_seat(db: Session, event_id: int) -> None:
    # Check capacity and increment registered_count atomically
    stmt = (
        update(Event)
        .where(Event.id == event_id)
        .where(Event.registered_count < Event.capacity)
        .values(registered_count=Event.registered_count + 1, version=Event.version + 1)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise InvalidStateError("Event is at full capacity")


def _release_seat(db: Session, event_id: int) -> None:
    stmt = (
        update(Event)
        .where(Event.id == event_id)
        .where(Event.registered_count > 0)
        .values(registered_count=Event.registered_count - 1, version=Event.version + 1)
    )
    db.execute(stmt)


def release_registration(db: Session, registration: Registration) -> bool:
    """
    Move a confirmed registration to CANCELLED and give its seat back.

    The status change is conditional on the row still being CONFIRMED, so of
    several concurrent releases only one frees the seat. Returns False when
    the registration was no longer confirmed. Runs inside the caller's
    transaction.
    """
    stmt = (
        update(Registration)
        .where(Registration.id == registration.id)
        .where(Registration.status == RegistrationStatus.CONFIRMED.value)
        .values(status=RegistrationStatus.CANCELLED.value)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount != 1:  # type: ignore
        return False
    _release_seat(db, registration.event_id)
    return True


def cancel(db: Session, *, user_id: int, event_id: int, clock: Clock = utcnow) -> Registration:
    registration = find_registration(db, user_id, event_id)
    if registration is None:
        raise NotFoundError.for_resource("Registration", "userId and eventId", f"{user_id}, {event_id}")

    if registration.event.start_time <= clock():
        raise InvalidStateError("Cannot cancel registration for events that have already started")

    if not registration.is_active:
        raise InvalidStateError("Registration is already cancelled")

    with transaction(db):
        if not release_registration(db, registration):
            raise InvalidStateError("Registration is already cancelled")
    db.refresh(registration)

    logger.info("Registration cancelled: id=%s user=%s event=%s", registration.id, user_id, event_id)
    return registration


def delete_registration(db: Session, registration_id: int) -> None:
    """Remove a registration for good; a confirmed one gives its seat back."""
    registration = get_registration(db, registration_id)

    with transaction(db):
        release_registration(db, registration)
        db.delete(registration)

    logger.info("Registration deleted: id=%s", registration_id)


def get_registration(db: Session, registration_id: int) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise NotFoundError.for_resource("Registration", "id", registration_id)
    return registration


def list_registrations(db: Session) -> list[Registration]:
    return list(db.scalars(select(Registration).order_by(Registration.id)))


def list_registrations_by_user(db: Session, user_id: int) -> list[Registration]:
    _get_user(db, user_id)
    stmt = select(Registration).where(Registration.user_id == user_id).order_by(Registration.id)
    return list(db.scalars(stmt))


def list_registrations_by_event(db: Session, event_id: int) -> list[Registration]:
    _get_event(db, event_id)
    stmt = select(Registration).where(Registration.event_id == event_id).order_by(Registration.id)
    return list(db.scalars(stmt))
