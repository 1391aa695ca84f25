from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from event_registry.core import permissions
from event_registry.core.clock import Clock, get_clock
from event_registry.database.db import get_db
from event_registry.models.users import User
from event_registry.routes.deps import authorize, get_current_user, require_admin
from event_registry.schemas.registrations import RegistrationOut
from event_registry.services import registrations as registration_service
from event_registry.services.events import get_event

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.get("", response_model=list[RegistrationOut])
def list_registrations(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return registration_service.list_registrations(db)


@router.get("/user/{user_id}", response_model=list[RegistrationOut])
def list_registrations_by_user(
    user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    return registration_service.list_registrations_by_user(db, user_id)


@router.get("/event/{event_id}", response_model=list[RegistrationOut])
def list_registrations_by_event(
    event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    event = get_event(db, event_id)
    authorize(permissions.can_manage_event(current_user.id, current_user.roles, event.organizer_id))
    return registration_service.list_registrations_by_event(db, event_id)


@router.get("/{registration_id}", response_model=RegistrationOut)
def get_registration(
    registration_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    registration = registration_service.get_registration(db, registration_id)
    authorize(
        permissions.can_view_registration(
            current_user.id, current_user.roles, registration.user_id, registration.event.organizer_id
        )
    )
    return registration


@router.post(
    "/user/{user_id}/event/{event_id}",
    response_model=RegistrationOut,
    status_code=status.HTTP_201_CREATED,
)
def register_for_event(
    user_id: int,
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    return registration_service.register(db, user_id=user_id, event_id=event_id, clock=clock)


@router.patch("/user/{user_id}/event/{event_id}/cancel", response_model=RegistrationOut)
def cancel_registration(
    user_id: int,
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    return registration_service.cancel(db, user_id=user_id, event_id=event_id, clock=clock)


@router.delete("/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_registration(registration_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    registration_service.delete_registration(db, registration_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
