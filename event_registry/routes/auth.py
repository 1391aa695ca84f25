from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from event_registry.core import permissions
from event_registry.core.security import create_access_token
from event_registry.database.db import get_db
from event_registry.models.users import User
from event_registry.routes.deps import authorize, get_optional_user
from event_registry.schemas.auth import LoginRequest, TokenOut
from event_registry.schemas.users import UserCreate, UserOut
from event_registry.services.users import authenticate, create_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.username, payload.password)
    token = create_access_token(data={"sub": user.username})
    return TokenOut(access_token=token, user_id=user.id, username=user.username, email=user.email)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    actor_roles = current_user.roles if current_user else []
    authorize(
        permissions.can_grant_roles(actor_roles, [role.value for role in payload.roles]),
        "Only administrators can grant the ADMIN role",
    )
    return create_user(db, payload)
