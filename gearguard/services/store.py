from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    # 23503 is foreign_key_violation on Postgres; SQLite only reports it in the message
    if getattr(exc.orig, "pgcode", None) == "23503":
        return True
    return "foreign key" in str(exc.orig).lower()


@contextmanager
def conflict_on_integrity_error(db: Session, message: str, missing: str = "Referenced record not found"):
    """Flush pending writes; a unique/check constraint hit becomes a Conflict,
    a dangling reference becomes NotFound."""
    try:
        yield
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if _is_foreign_key_violation(exc):
            raise NotFound(missing) from exc
        raise Conflict(message) from exc


def clean_text(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def require_text(value: Optional[str], field: str, label: str) -> str:
    cleaned = clean_text(value)
    if not cleaned:
        raise ValidationError(f"{label} is required", field=field)
    return cleaned
