from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from qrdine.application.ports.repositories import StorageError

logger = logging.getLogger(__name__)


class DependencyFailureError(Exception):
    """A storage or transport collaborator failed; the caller may retry."""


@contextmanager
def storage_guard(operation: str, **context: str) -> Iterator[None]:
    try:
        yield
    except StorageError as exc:
        logger.exception("dependency_failure", extra={"operation": operation, **context})
        raise DependencyFailureError(f"{operation} failed: {exc}") from exc
