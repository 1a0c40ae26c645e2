from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.db.session import get_db
from medicore.deps import get_current_user, require_admin
from medicore.models.user import Role, User
from medicore.schemas.common import ApiResponse, envelope
from medicore.schemas.user import UserCreate, UserOut, UserUpdate
from medicore.services.audit import log_event
from medicore.services.users import create_user, get_user_by_email, get_user_by_id, update_user

router = APIRouter(prefix="/users", tags=["users"])


def _out(user: User) -> UserOut:
    return UserOut.model_validate(user)


@router.get("", response_model=ApiResponse[list[UserOut]])
def list_users(
    role: Optional[Role] = None,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    stmt = select(User).order_by(User.id)
    if role is not None:
        stmt = stmt.where(User.role == role)
    return envelope([_out(user) for user in db.scalars(stmt)])


@router.get("/doctors", response_model=ApiResponse[list[UserOut]])
def list_doctors(
    db: Session = Depends(get_db),
    _=Depends(get_current_user),
):
    stmt = (
        select(User)
        .where(User.role == Role.doctor, User.is_active.is_(True))
        .order_by(User.name, User.id)
    )
    return envelope([_out(user) for user in db.scalars(stmt)])


@router.post("", response_model=ApiResponse[UserOut], status_code=status.HTTP_201_CREATED)
def add_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    if get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")
    user = create_user(
        db,
        email=payload.email,
        name=payload.name.strip(),
        role=payload.role,
        department=payload.department,
        is_active=True,
    )
    log_event(
        db,
        actor=admin,
        action="user.created",
        entity_type="user",
        entity_id=str(user.id),
        after_data={"email": user.email, "role": user.role.value},
        request_id=request_id,
    )
    db.commit()
    return envelope(_out(user), "User created successfully")


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return envelope(_out(user))


@router.patch("/{user_id}", response_model=ApiResponse[UserOut])
def patch_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    request_id: str | None = Header(default=None, alias="X-Request-ID"),
):
    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    previous_role = user.role
    updated = update_user(
        db,
        user=user,
        name=payload.name,
        role=payload.role,
        department=payload.department,
        is_active=payload.is_active,
    )
    if payload.role and updated.role != previous_role:
        log_event(
            db,
            actor=admin,
            action="user.role_changed",
            entity_type="user",
            entity_id=str(updated.id),
            before_data={"role": previous_role.value},
            after_data={"role": updated.role.value},
            request_id=request_id,
        )
        db.commit()
    return envelope(_out(updated), "User updated successfully")
