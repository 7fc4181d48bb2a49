from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

APPLICATION_NAME = "qrdine"
DEFAULT_POOL_SIZE = 5
DEFAULT_MAX_OVERFLOW = 10


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    return url


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}, got {value}")
    return value


def pool_settings() -> tuple[int, int]:
    """Connection pool sizing for the ordering API.

    ``DB_POOL_SIZE`` bounds the steady connections, ``DB_MAX_OVERFLOW`` the
    burst allowance on top of it. Bill closes hold one connection for the
    whole consolidation write.
    """
    return (
        _env_int("DB_POOL_SIZE", DEFAULT_POOL_SIZE, minimum=1),
        _env_int("DB_MAX_OVERFLOW", DEFAULT_MAX_OVERFLOW, minimum=0),
    )


@lru_cache(maxsize=8)
def _build_engine(
    database_url: str,
    connect_timeout: int,
    pool_size: int,
    max_overflow: int,
) -> Engine:
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        connect_args={
            "connect_timeout": connect_timeout,
            "application_name": APPLICATION_NAME,
        },
    )


def get_engine(timeout_seconds: float = 1.0) -> Engine:
    connect_timeout = max(1, int(timeout_seconds))
    pool_size, max_overflow = pool_settings()
    return _build_engine(_database_url(), connect_timeout, pool_size, max_overflow)


def ping_database(timeout_seconds: float = 1.0) -> bool:
    try:
        with get_engine(timeout_seconds).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
