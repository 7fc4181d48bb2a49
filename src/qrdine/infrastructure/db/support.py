from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from qrdine.application.ports.repositories import StorageError


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"{operation} failed: {exc.__class__.__name__}") from exc


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def optional_utc(value: datetime | None) -> datetime | None:
    return to_utc(value) if value is not None else None
