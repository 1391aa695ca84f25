import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from event_registry.core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from event_registry.core.security import hash_password, verify_password
from event_registry.database.db import transaction
from event_registry.models.registrations import Registration, RegistrationStatus
from event_registry.models.users import Role, User
from event_registry.schemas.users import UserCreate, UserUpdate
from event_registry.services.registrations import release_registration

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError.for_resource("User", "id", user_id)
    return user


def get_user_by_username(db: Session, username: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    if user is None:
        raise NotFoundError.for_resource("User", "username", username)
    return user


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)))


def username_exists(db: Session, username: str) -> bool:
    return db.scalar(select(User.id).where(User.username == username)) is not None


def email_exists(db: Session, email: str) -> bool:
    return db.scalar(select(User.id).where(User.email == email)) is not None


def _role_values(roles) -> list[str]:
    # Stored sorted so that equal role sets compare equal.
    return sorted(Role(role).value for role in roles)


def create_user(db: Session, payload: UserCreate) -> User:
    if username_exists(db, payload.username):
        raise ConflictError.already_exists("User", "username", payload.username)
    if email_exists(db, payload.email):
        raise ConflictError.already_exists("User", "email", payload.email)

    user = User(
        username=payload.username,
        email=payload.email,
        hashed_password=hash_password(payload.password),
        full_name=payload.full_name,
        roles=_role_values(payload.roles or {Role.USER}),
    )
    with transaction(db):
        db.add(user)
    db.refresh(user)

    logger.info("User created: %s (roles=%s)", user.username, user.roles)
    return user


def update_user(db: Session, user_id: int, payload: UserUpdate) -> User:
    user = get_user(db, user_id)

    if user.username != payload.username and username_exists(db, payload.username):
        raise ConflictError.already_exists("User", "username", payload.username)
    if user.email != payload.email and email_exists(db, payload.email):
        raise ConflictError.already_exists("User", "email", payload.email)

    with transaction(db):
        user.username = payload.username
        user.email = payload.email
        user.full_name = payload.full_name
        if payload.password:
            user.hashed_password = hash_password(payload.password)
        if payload.roles is not None:
            user.roles = _role_values(payload.roles)
    db.refresh(user)

    logger.info("User updated: %s", user.username)
    return user


def delete_user(db: Session, user_id: int) -> None:
    """
    Delete a user together with the events they organize and their registrations.

    Seats held by the user's confirmed registrations on other organizers' events
    are released first.
    """
    user = get_user(db, user_id)

    with transaction(db):
        held = db.scalars(
            select(Registration).where(
                Registration.user_id == user_id,
                Registration.status == RegistrationStatus.CONFIRMED.value,
            )
        ).all()
        released = sum(release_registration(db, registration) for registration in held)
        db.delete(user)

    logger.info("User deleted: id=%s, released %d seat(s)", user_id, released)


def authenticate(db: Session, username: str, password: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt for %s", username)
        raise UnauthorizedError("Invalid username or password")
    return user
