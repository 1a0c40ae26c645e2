from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from medicore.models.user import Role as RoleEnum
from medicore.schemas.common import CamelModel, OrmModel


class UserOut(OrmModel):
    id: int
    email: EmailStr
    name: str
    role: RoleEnum
    department: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserCreate(CamelModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=200)
    role: RoleEnum = RoleEnum.doctor
    department: Optional[str] = None


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role: Optional[RoleEnum] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
