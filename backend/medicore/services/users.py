from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from medicore.models.user import Role, User


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower().strip()))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.scalar(select(User).where(User.id == user_id))


def get_doctor(db: Session, doctor_id: int) -> User | None:
    return db.scalar(select(User).where(User.id == doctor_id, User.role == Role.doctor))


def create_user(
    db: Session,
    *,
    email: str,
    name: str = "",
    role: Role = Role.receptionist,
    department: str | None = None,
    is_active: bool = True,
) -> User:
    user = User(
        email=email.lower().strip(),
        name=name,
        role=role,
        department=department,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def user_count(db: Session) -> int:
    return int(db.scalar(select(func.count(User.id))) or 0)


def seed_initial_admin(db: Session, *, email: str, name: str) -> bool:
    if user_count(db) > 0:
        return False
    create_user(db, email=email, name=name, role=Role.admin, is_active=True)
    return True


def update_user(
    db: Session,
    *,
    user: User,
    name: str | None = None,
    role: Role | None = None,
    department: str | None = None,
    is_active: bool | None = None,
) -> User:
    if name is not None:
        user.name = name
    if role is not None:
        user.role = role
    if department is not None:
        user.department = department
    if is_active is not None:
        user.is_active = is_active
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
