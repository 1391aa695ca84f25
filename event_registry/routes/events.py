from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from event_registry.core import permissions
from event_registry.core.clock import Clock, get_clock
from event_registry.database.db import get_db
from event_registry.models.users import User
from event_registry.routes.deps import authorize, get_current_user
from event_registry.schemas.events import EventCreate, EventOut, EventUpdate
from event_registry.services import events as event_service

router = APIRouter(prefix="/events", tags=["events"])


def _authorize_event_management(db: Session, event_id: int, current_user: User) -> None:
    event = event_service.get_event(db, event_id)
    authorize(
        permissions.can_manage_event(current_user.id, current_user.roles, event.organizer_id),
        "Only the organizer of this event or an administrator can manage it",
    )


@router.get("", response_model=list[EventOut])
def list_events(published_only: bool = False, db: Session = Depends(get_db)):
    return event_service.list_events(db, published_only=published_only)


@router.get("/search", response_model=list[EventOut])
def search_events(
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    on_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    return event_service.search_events(db, keyword=keyword, category=category, on_date=on_date)


@router.get("/organizer/{organizer_id}", response_model=list[EventOut])
def list_events_by_organizer(organizer_id: int, db: Session = Depends(get_db)):
    return event_service.list_events_by_organizer(db, organizer_id)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    authorize(
        permissions.can_create_events(current_user.roles),
        "Only organizers and administrators can create events",
    )
    organizer_id = payload.organizer_id or current_user.id
    authorize(
        permissions.can_act_for_user(current_user.id, current_user.roles, organizer_id),
        "Only administrators can create events for another organizer",
    )
    return event_service.create_event(db, payload, organizer_id=organizer_id, clock=clock)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    _authorize_event_management(db, event_id, current_user)
    return event_service.update_event(db, event_id, payload, clock=clock)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_event_management(db, event_id, current_user)
    event_service.delete_event(db, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{event_id}/publish", response_model=EventOut)
def publish_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_event_management(db, event_id, current_user)
    return event_service.publish_event(db, event_id)


@router.patch("/{event_id}/unpublish", response_model=EventOut)
def unpublish_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    _authorize_event_management(db, event_id, current_user)
    return event_service.unpublish_event(db, event_id)
