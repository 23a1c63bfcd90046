"""Discriminated operation result and the transaction runner.

Services return ``Ok(value)`` or ``Err(error)`` for every expected outcome;
only SYSTEM failures are raised.

``run_atomic`` rules:
  - ``op`` raises an expected AppError -> rollback, ``Err(error)``
  - ``op`` returns ``Err(error)``      -> COMMIT, ``Err(error)``
    (a persisted transition that is still a failure for the caller,
    e.g. an order rejected on re-validation)
  - ``op`` returns anything else       -> commit, ``Ok(value)``
  - any other exception                -> rollback, InternalError raised
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.errors import AppError, ErrorCategory, InternalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def is_ok(self) -> bool:
        return False


Result = Ok[T] | Err


def unwrap(result: "Ok[T] | Err") -> T:
    """Return the Ok value or raise the carried AppError (HTTP boundary helper)."""
    if isinstance(result, Err):
        raise result.error
    return result.value


async def run_atomic(
    db: AsyncSession,
    op: Callable[[], Awaitable["T | Err"]],
    outbox: list[Any] | None = None,
) -> "Ok[T] | Err":
    """Run ``op`` in one transaction. ``outbox`` collects after-commit side
    effects (pub/sub events, emails); it is emptied when the transaction rolls
    back so the caller only ever dispatches what was committed."""
    try:
        outcome = await op()
        await db.commit()
    except AppError as exc:
        await db.rollback()
        if outbox is not None:
            outbox.clear()
        if exc.category is ErrorCategory.SYSTEM:
            raise
        return Err(exc)
    except Exception as exc:
        await db.rollback()
        if outbox is not None:
            outbox.clear()
        logger.exception("Transaction rolled back on unexpected failure")
        raise InternalError("Persistence failure; no changes were applied") from exc

    if isinstance(outcome, Err):
        return outcome
    return Ok(outcome)
