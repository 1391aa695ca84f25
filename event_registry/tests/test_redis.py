"""
Test the Redis lock that serializes registrations per event.
"""
import logging
from datetime import timedelta

import pytest

from event_registry.core.exceptions import InvalidStateError
from event_registry.models.registrations import RegistrationStatus
from event_registry.services import registrations as registration_service


class TestRedisIntegration:
    """Test Redis functionality."""

    def test_redis_lock_blocking(self, fake_redis):
        """Test that a lock cannot be acquired twice."""
        lock1 = fake_redis.lock("event_lock:1", timeout=10)
        lock2 = fake_redis.lock("event_lock:1", timeout=10)

        assert lock1.acquire(blocking=False) is True
        assert lock2.acquire(blocking=False) is False

        lock1.release()

        assert lock2.acquire(blocking=False) is True
        lock2.release()

    def test_locks_are_per_event(self, fake_redis):
        """Test locks on different events are independent."""
        lock1 = fake_redis.lock("event_lock:1", timeout=10)
        lock2 = fake_redis.lock("event_lock:2", timeout=10)

        assert lock1.acquire(blocking=False) is True
        assert lock2.acquire(blocking=False) is True

        lock1.release()
        lock2.release()

    def test_service_uses_patched_client(self, redis_client):
        """Test the registration service talks to the fake Redis in tests."""
        assert registration_service.get_redis_client() is redis_client


class TestRegistrationLock:
    """Test the lock as used by the registration service."""

    def test_other_event_is_not_blocked(self, db_session, make_user, make_event, redis_client, clock):
        """Test a held lock on one event does not affect another."""
        busy = make_event(name="Busy")
        free = make_event(name="Free")
        held = redis_client.lock(f"event_lock:{busy.id}", timeout=10)
        assert held.acquire(blocking=False) is True

        registration = registration_service.register(
            db_session, user_id=make_user().id, event_id=free.id, clock=clock
        )

        assert registration.event_id == free.id
        assert redis_client.get(f"event_lock:{busy.id}") is not None
        held.release()

    def test_lock_released_after_rejection(self, db_session, make_user, make_event, redis_client, clock):
        event = make_event(published=False)

        with pytest.raises(InvalidStateError):
            registration_service.register(db_session, user_id=make_user().id, event_id=event.id, clock=clock)

        lock = redis_client.lock(f"event_lock:{event.id}", timeout=10)
        assert lock.acquire(blocking=False) is True
        lock.release()

    @staticmethod
    def _expiring_clock(redis_client, event_id, now):
        """A clock that lets the event lock run out while the registration is in progress."""

        def clock():
            redis_client.delete(f"event_lock:{event_id}")
            return now

        return clock

    def test_expired_lock_keeps_the_registration(
        self, caplog, db_session, make_user, make_event, redis_client, now
    ):
        """Test a lock that timed out mid-request does not turn a committed registration into an error."""
        event = make_event()
        user = make_user()

        with caplog.at_level(logging.WARNING, logger="event_registry.services.registrations"):
            registration = registration_service.register(
                db_session,
                user_id=user.id,
                event_id=event.id,
                clock=self._expiring_clock(redis_client, event.id, now),
            )

        assert registration.status == RegistrationStatus.CONFIRMED.value
        assert "expired before it was released" in caplog.text
        db_session.refresh(event)
        assert event.registered_count == 1

    def test_expired_lock_keeps_the_original_error(self, db_session, make_user, make_event, redis_client, now):
        """Test the business error is reported, not a busy event."""
        event = make_event(starts_in=timedelta(days=-1))
        clock = self._expiring_clock(redis_client, event.id, now)

        with pytest.raises(InvalidStateError, match="past events"):
            registration_service.register(db_session, user_id=make_user().id, event_id=event.id, clock=clock)
