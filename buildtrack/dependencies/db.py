from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from ..db.session import SessionFactory


def get_db() -> Iterator[Session]:
    db = SessionFactory()
    try:
        yield db
    finally:
        db.close()
