"""
Test user service functions.
"""
import pytest
from sqlalchemy.orm import Session

from event_registry.core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from event_registry.core.security import verify_password
from event_registry.models.events import Event
from event_registry.models.users import Role
from event_registry.schemas.users import UserCreate, UserUpdate
from event_registry.services.registrations import cancel, register
from event_registry.services.users import (
    authenticate,
    create_user,
    delete_user,
    get_user,
    get_user_by_username,
    list_users,
    update_user,
)


def _create_payload(username="alice", **overrides):
    data = {
        "username": username,
        "email": f"{username}@example.com",
        "password": "password1",
        "full_name": username.title(),
    }
    data.update(overrides)
    return UserCreate(**data)


class TestCreateUser:
    """Test creating users."""

    def test_create_user(self, db_session: Session):
        user = create_user(db_session, _create_payload())

        assert user.id is not None
        assert user.roles == ["USER"]
        assert user.hashed_password != "password1"
        assert verify_password("password1", user.hashed_password)

    def test_create_user_with_roles(self, db_session: Session):
        user = create_user(db_session, _create_payload(roles={Role.ORGANIZER, Role.USER}))

        assert user.roles == ["ORGANIZER", "USER"]

    def test_duplicate_username(self, db_session: Session, make_user):
        make_user("alice", email="first@example.com")

        with pytest.raises(ConflictError, match="User already exists with username: alice"):
            create_user(db_session, _create_payload("alice"))

    def test_duplicate_email(self, db_session: Session, make_user):
        make_user("bob", email="alice@example.com")

        with pytest.raises(ConflictError, match="email"):
            create_user(db_session, _create_payload("alice"))


class TestUpdateUser:
    """Test updating users."""

    def test_update_user(self, db_session: Session, make_user):
        user = make_user("carol")

        updated = update_user(
            db_session,
            user.id,
            UserUpdate(username="caroline", email="caroline@example.com", full_name="Caroline"),
        )

        assert updated.username == "caroline"
        assert updated.full_name == "Caroline"
        # Password untouched when omitted
        assert verify_password("secret123", updated.hashed_password)

    def test_update_password_and_roles(self, db_session: Session, make_user):
        user = make_user("dave")

        updated = update_user(
            db_session,
            user.id,
            UserUpdate(
                username="dave",
                email="dave@example.com",
                password="newpassword",
                roles={Role.ORGANIZER},
            ),
        )

        assert updated.roles == ["ORGANIZER"]
        assert verify_password("newpassword", updated.hashed_password)

    def test_update_to_taken_username(self, db_session: Session, make_user):
        make_user("erin")
        frank = make_user("frank")

        with pytest.raises(ConflictError, match="username: erin"):
            update_user(db_session, frank.id, UserUpdate(username="erin", email="frank@example.com"))

    def test_update_missing_user(self, db_session: Session):
        with pytest.raises(NotFoundError):
            update_user(db_session, 999, UserUpdate(username="ghost", email="ghost@example.com"))


class TestDeleteUser:
    """Test deleting users."""

    def test_delete_user_releases_seats(self, db_session: Session, make_user, make_event, clock):
        """Test the seats held by a deleted user go back to their events."""
        user = make_user()
        stays = make_user()
        first = make_event(name="First", capacity=2)
        second = make_event(name="Second", capacity=2)
        register(db_session, user_id=user.id, event_id=first.id, clock=clock)
        register(db_session, user_id=user.id, event_id=second.id, clock=clock)
        register(db_session, user_id=stays.id, event_id=first.id, clock=clock)
        cancel(db_session, user_id=user.id, event_id=second.id, clock=clock)

        delete_user(db_session, user.id)

        first = db_session.get(Event, first.id)
        second = db_session.get(Event, second.id)
        db_session.refresh(first)
        db_session.refresh(second)
        assert first.registered_count == 1
        assert second.registered_count == 0
        assert len(first.registrations) == 1
        with pytest.raises(NotFoundError):
            get_user(db_session, user.id)

    def test_delete_organizer_removes_events(self, db_session: Session, organizer, make_event):
        make_event()

        delete_user(db_session, organizer.id)

        assert db_session.query(Event).count() == 0

    def test_delete_missing_user(self, db_session: Session):
        with pytest.raises(NotFoundError):
            delete_user(db_session, 999)


class TestUserQueries:
    """Test user lookups and authentication."""

    def test_lookups(self, db_session: Session, make_user):
        first = make_user("henry")
        second = make_user("irene")

        assert [u.id for u in list_users(db_session)] == [first.id, second.id]
        assert get_user_by_username(db_session, "irene").id == second.id
        with pytest.raises(NotFoundError, match="User not found with username: nobody"):
            get_user_by_username(db_session, "nobody")

    def test_authenticate(self, db_session: Session, make_user):
        user = make_user("jack")

        assert authenticate(db_session, "jack", "secret123").id == user.id

    @pytest.mark.parametrize("username,password", [("jack", "wrong-password"), ("nobody", "secret123")])
    def test_authenticate_failure(self, db_session: Session, make_user, username, password):
        make_user("jack")

        with pytest.raises(UnauthorizedError, match="Invalid username or password"):
            authenticate(db_session, username, password)
