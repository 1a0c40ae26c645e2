from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.core.security import user_id_from_token
from medicore.core.settings import settings
from medicore.db.session import get_db
from medicore.models.user import Role, User


def get_current_user(
    db: Session = Depends(get_db), authorization: str | None = Header(default=None)
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. No token provided.",
        )
    token = authorization.split(" ", 1)[1].strip()
    try:
        user_id = user_id_from_token(token, secret=settings.secret_key, alg=settings.jwt_alg)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )

    user = db.scalar(select(User).where(User.id == user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    return user


def require_roles(*roles: Role):
    allowed = {role.value for role in roles}

    def _inner(user: User = Depends(get_current_user)) -> User:
        if user.role.value not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )
        return user

    return _inner


require_admin = require_roles(Role.admin)
require_front_desk = require_roles(Role.admin, Role.receptionist)
require_clinical = require_roles(Role.admin, Role.doctor)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
