"""Base model and mixins for SQLModel."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as naive UTC, the form SQLite round-trips."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Any) -> Any:
    """Convert an aware datetime to naive UTC; other values pass through."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_structured_json(value: Any) -> Any:
    """Normalize a JSON-bearing value to a JSON object or array.

    Accepts ``None``, a dict/list, or JSON text that decodes to an object or
    array. Raises ``ValueError`` for anything else, including values that
    cannot be serialized back to strict JSON (NaN, sets, ...).
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e.msg} at position {e.pos}") from e
    if not isinstance(value, (dict, list)):
        raise ValueError(
            f"expected a JSON object or array, got {type(value).__name__}"
        )
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"value is not JSON serializable: {e}") from e
    return value


class TimestampMixin(SQLModel):
    """Mixin for created_at/updated_at timestamps.

    Timestamps are stored as naive UTC in a plain ``DateTime`` column.
    ``updated_at`` is re-stamped on every repository update and by the
    session's flush hook (see ``darkroom.db.connection``).
    """

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


def touch(entity: TimestampMixin) -> None:
    """Stamp ``updated_at`` with the current time, never moving it backwards."""
    now = utcnow()
    previous = entity.updated_at
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    entity.updated_at = now
