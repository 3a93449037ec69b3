from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import inspect


def to_jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def serialize_row(row: Any, exclude: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Column values of an ORM row as a JSON-ready dict keyed by column name."""
    skipped = set(exclude or ())
    mapper = inspect(row).mapper
    return {
        attr.key: to_jsonable(getattr(row, attr.key))
        for attr in mapper.column_attrs
        if attr.key not in skipped
    }


def serialize_rows(rows: Iterable[Any]) -> list[dict[str, Any]]:
    return [serialize_row(row) for row in rows]
