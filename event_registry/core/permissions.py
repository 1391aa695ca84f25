"""
Authorization predicates.

Every check takes the acting user's id and roles plus the id of the user that
owns the resource, and answers allow (True) or deny (False). Nothing here
touches the database; callers load the resource owner first.
"""
from collections.abc import Iterable

from event_registry.models.users import Role


def has_role(roles: Iterable[str], role: Role) -> bool:
    return role.value in set(roles)


def is_admin(roles: Iterable[str]) -> bool:
    return has_role(roles, Role.ADMIN)


def can_act_for_user(actor_id: int, roles: Iterable[str], user_id: int) -> bool:
    """Admins may act for anyone; everybody else only for themselves."""
    return is_admin(roles) or actor_id == user_id


def can_create_events(roles: Iterable[str]) -> bool:
    return is_admin(roles) or has_role(roles, Role.ORGANIZER)


def can_manage_event(actor_id: int, roles: Iterable[str], organizer_id: int) -> bool:
    return is_admin(roles) or actor_id == organizer_id


def can_view_registration(
    actor_id: int, roles: Iterable[str], registrant_id: int, organizer_id: int
) -> bool:
    """The registrant, the organizer of the event, or an admin."""
    return can_act_for_user(actor_id, roles, registrant_id) or can_manage_event(
        actor_id, roles, organizer_id
    )


def can_grant_roles(roles: Iterable[str], requested: Iterable[str]) -> bool:
    """Only admins may hand out the ADMIN role."""
    return is_admin(roles) or Role.ADMIN.value not in set(requested)
