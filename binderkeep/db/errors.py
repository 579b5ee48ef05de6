"""Translation of store exceptions into ledger failures."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from binderkeep.models.failure import PersistenceError

logger = logging.getLogger(__name__)

# Fragments of driver messages raised for a missing column or table
_SCHEMA_MISMATCH_MARKERS = (
    "no such column",
    "no such table",
    "has no column",
    "undefinedcolumn",
    "undefinedtable",
    "does not exist",
    "unknown column",
)


def looks_like_schema_mismatch(error: BaseException) -> bool:
    """True if the store error reads like a missing column/table problem."""
    text = f"{type(getattr(error, 'orig', None) or error).__name__} {error}".lower()
    return any(marker in text for marker in _SCHEMA_MISMATCH_MARKERS)


@contextmanager
def persistence_errors(operation: str) -> Iterator[None]:
    """
    Re-raise SQLAlchemy errors raised inside the block as PersistenceError.

    Usage:
        with persistence_errors("insert ownership"):
            await session.flush()
    """
    try:
        yield
    except SQLAlchemyError as e:
        schema_mismatch = looks_like_schema_mismatch(e)
        logger.warning(
            "Store rejected %s (schema_mismatch=%s): %s", operation, schema_mismatch, e
        )
        raise PersistenceError(
            operation,
            detail=f"{type(e).__name__} during {operation}",
            schema_mismatch=schema_mismatch,
        ) from e
