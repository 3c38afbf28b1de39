"""Exception taxonomy for ``finquest``.

- :class:`ValidationError`: malformed input, rejected before any write.
- :class:`NotFoundError`: unknown or already-deleted id.
- :class:`BackendFailure`: a persistence error inside one stage of an
  operation. The stage name tells the caller how far the cascade got; the
  derived state heals on the next :func:`finquest.dashboard.reconcile`.

Insufficient funds is deliberately not an exception: goal funding returns a
structured failure result instead.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from .logging_setup import get_logger

_logger = get_logger("finquest.errors")


class FinquestError(Exception):
    """Base class for every error raised by ``finquest``."""


class ValidationError(FinquestError, ValueError):
    pass


class NotFoundError(FinquestError, LookupError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id!r}")
        self.entity = entity
        self.entity_id = entity_id


class BackendFailure(FinquestError):
    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"backend failure during {stage}: {cause}")
        self.stage = stage
        self.cause = cause


@contextmanager
def backend_stage(stage: str) -> Iterator[None]:
    """Translate ``SQLAlchemyError`` raised inside ``stage`` into BackendFailure."""

    try:
        yield
    except SQLAlchemyError as e:
        _logger.error("stage %s failed: %s", stage, e)
        raise BackendFailure(stage, e) from e


__all__ = [
    "FinquestError",
    "ValidationError",
    "NotFoundError",
    "BackendFailure",
    "backend_stage",
]
