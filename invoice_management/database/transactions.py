# database/transactions.py
from __future__ import annotations

from contextlib import contextmanager
from itertools import count
from typing import Iterator, Optional
import sqlite3

from ..errors import PersistenceError
from ..utils.loggers import get_logger

logger = get_logger(__name__)

_savepoints = count(1)


@contextmanager
def transaction(
    conn: sqlite3.Connection,
    *,
    operation: Optional[str] = None,
    document: Optional[str] = None,
    ref: object = None,
) -> Iterator[sqlite3.Connection]:
    """
    Run the body as one unit of work.

    The outermost call issues BEGIN IMMEDIATE (the write lock is taken before
    the body reads anything), commits on success and rolls back on any
    exception. Nested calls become SAVEPOINTs so helpers can open their own
    transaction when called on their own and join the caller's otherwise.

    sqlite3.Error escaping the outermost block is re-raised as PersistenceError
    chained to the original; every other exception propagates unchanged.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoints)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO {name}")
            conn.execute(f"RELEASE {name}")
            raise
        conn.execute(f"RELEASE {name}")
        return

    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as e:
        raise PersistenceError(
            f"Could not start transaction for {operation or 'update'}: {e}",
            document=document, ref=ref, operation=operation,
        ) from e

    try:
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        logger.warning("Rolled back %s %s (%s): %s", operation or "update", document or "", ref, e)
        raise PersistenceError(
            f"Database error during {operation or 'update'}"
            + (f" of {document} {ref}" if document and ref is not None else "")
            + f": {e}",
            document=document, ref=ref, operation=operation,
        ) from e
    except BaseException as e:
        conn.rollback()
        logger.warning("Rolled back %s %s (%s): %s", operation or "update", document or "", ref, e)
        raise

    try:
        conn.execute("COMMIT")
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(
            f"Could not commit {operation or 'update'}: {e}",
            document=document, ref=ref, operation=operation,
        ) from e


__all__ = ["transaction"]
