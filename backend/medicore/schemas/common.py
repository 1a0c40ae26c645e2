from __future__ import annotations

import math
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from medicore.services.billing import normalize_money

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_clock(value: Any) -> Any:
    if isinstance(value, str) and len(value.strip()) == 5:
        return datetime.strptime(value.strip(), "%H:%M").time()
    return value


Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: f"{normalize_money(value):.2f}", return_type=str, when_used="json"),
]
ClockTime = Annotated[
    time,
    BeforeValidator(_parse_clock),
    PlainSerializer(lambda value: value.strftime("%H:%M"), return_type=str, when_used="json"),
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str = "Success"
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class PageMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(CamelModel, Generic[T]):
    success: bool = True
    data: list[T]
    pagination: PageMeta
    timestamp: datetime = Field(default_factory=_utcnow)


class StatusOut(CamelModel):
    id: str
    status: str


def envelope(data: Any = None, message: str = "Success") -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def paginated(data: list[Any], *, page: int, limit: int, total: int) -> dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "pagination": PageMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_next=page * limit < total,
            has_prev=page > 1,
        ),
    }
