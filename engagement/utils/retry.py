"""
Transient storage error handling

A transaction that fails because of a dropped connection, a serialization
conflict or a deadlock is worth one more try. Anything else is not.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from engagement.utils.metrics import STORAGE_RETRIES_TOTAL

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"40001", "40P01"}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return code
    # asyncpg errors are wrapped once more by the SQLAlchemy adapter
    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "sqlstate", None)


def is_transient_error(exc: BaseException) -> bool:
    """Return True for storage errors that may succeed when retried."""
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return True
        return _sqlstate(exc) in TRANSIENT_SQLSTATES
    return False


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    attempts: int = 1,
    base_delay: float = 0.05,
    on_retry: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """
    Run ``operation``, retrying up to ``attempts`` more times on transient errors.

    The delay doubles on every retry. ``on_retry`` runs before each new
    attempt (typically a session rollback). Non-transient errors and the last
    transient error propagate unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except DBAPIError as exc:
            if not is_transient_error(exc) or attempt >= attempts:
                raise
            delay = base_delay * (2**attempt)
            attempt += 1
            STORAGE_RETRIES_TOTAL.labels(operation=name).inc()
            logger.warning(f"Transient storage error in {name}, retry {attempt}/{attempts} in {delay:.2f}s: {exc}")
            if on_retry is not None:
                await on_retry()
            await asyncio.sleep(delay)
