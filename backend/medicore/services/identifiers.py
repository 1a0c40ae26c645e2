"""Human-readable sequential identifiers (``P001``, ``A002``, ``INV003``).

The next number is one past the largest numeric suffix already stored for the
prefix. Counting rows would reissue identifiers after deletions.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute, Session

logger = logging.getLogger("medicore.identifiers")

T = TypeVar("T")

PATIENT_PREFIX = "P"
APPOINTMENT_PREFIX = "A"
INVOICE_PREFIX = "INV"
INVOICE_ITEM_PREFIX = "ITEM"
MEDICAL_RECORD_PREFIX = "MR"
PRESCRIPTION_PREFIX = "RX"


def _suffix_pattern(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prefix)}([0-9]+)$")


def next_sequential_id(prefix: str, existing_ids: Iterable[str | None], width: int = 3) -> str:
    pattern = _suffix_pattern(prefix)
    highest = 0
    for value in existing_ids:
        if not value:
            continue
        match = pattern.match(value)
        if match:
            highest = max(highest, int(match.group(1)))
    return format_sequential_id(prefix, highest + 1, width=width)


def format_sequential_id(prefix: str, number: int, width: int = 3) -> str:
    if number < 1:
        raise ValueError("Sequential identifiers start at 1")
    return f"{prefix}{number:0{width}d}"


def id_ordering(column: InstrumentedAttribute, *, descending: bool = False) -> tuple:
    """Sort clauses that put ``A999`` before ``A1000``.

    Identifiers in one column share a prefix, so a shorter value always has the
    smaller number.
    """
    length = func.length(column)
    if descending:
        return (length.desc(), column.desc())
    return (length.asc(), column.asc())


def allocate_id(db: Session, column: InstrumentedAttribute, prefix: str) -> str:
    """Return the next free identifier for ``prefix`` in ``column``'s table.

    Reads within the caller's transaction. Two concurrent callers can compute
    the same value; the primary key rejects the second insert and the caller
    retries (see ``retry_on_id_collision``).
    """
    existing = db.scalars(select(column).where(column.like(f"{prefix}%")))
    allocated = next_sequential_id(prefix, existing)
    logger.debug("Allocated %s", allocated)
    return allocated


def allocate_many(db: Session, column: InstrumentedAttribute, prefix: str, count: int) -> list[str]:
    if count <= 0:
        return []
    first = allocate_id(db, column, prefix)
    start = int(first[len(prefix):])
    return [format_sequential_id(prefix, start + offset) for offset in range(count)]


def retry_on_id_collision(db: Session, build: Callable[[], T], *, attempts: int) -> T:
    """Run ``build`` and commit, retrying when a freshly allocated id collides.

    ``build`` must do all of its reads (including id allocation) itself so a
    retry starts from a clean transaction.
    """
    attempt = 1
    while True:
        try:
            result = build()
            db.commit()
            return result
        except IntegrityError:
            db.rollback()
            if attempt >= attempts:
                logger.error("Identifier allocation failed after %s attempts", attempt)
                raise
            logger.warning("Identifier collision on attempt %s, retrying", attempt)
            attempt += 1
