from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from event_registry.core import permissions
from event_registry.database.db import get_db
from event_registry.models.users import User
from event_registry.routes.deps import authorize, get_current_user, get_optional_user, require_admin
from event_registry.schemas.users import UserCreate, UserOut, UserUpdate
from event_registry.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return user_service.list_users(db)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    actor_roles = current_user.roles if current_user else []
    authorize(
        permissions.can_grant_roles(actor_roles, [role.value for role in payload.roles]),
        "Only administrators can grant the ADMIN role",
    )
    return user_service.create_user(db, payload)


@router.get("/username/{username}", response_model=UserOut)
def get_user_by_username(
    username: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)
):
    return user_service.get_user_by_username(db, username)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    return user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    if payload.roles is not None:
        authorize(
            permissions.can_grant_roles(current_user.roles, [role.value for role in payload.roles]),
            "Only administrators can grant the ADMIN role",
        )
    return user_service.update_user(db, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    authorize(permissions.can_act_for_user(current_user.id, current_user.roles, user_id))
    user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
