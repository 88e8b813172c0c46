from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Mapping
import sqlite3


def to_dec(x: Any) -> Decimal:
    """Decimal from a TEXT/INTEGER/REAL column value; NULL reads as 0."""
    if x is None or x == "":
        return Decimal("0")
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def patch_row(
    conn: sqlite3.Connection,
    table: str,
    key_column: str,
    key: int,
    patch: Mapping[str, Any],
    allowed: Iterable[str],
    *,
    touch: bool = True,
) -> int:
    """
    UPDATE only the columns present in `patch`. Column names are checked
    against `allowed`, so callers cannot inject identifiers.
    Returns the number of rows changed (0 when the id is unknown).
    """
    allowed = set(allowed)
    unknown = sorted(set(patch) - allowed)
    if unknown:
        raise ValueError(f"Cannot update {table} column(s): {', '.join(unknown)}")
    if not patch:
        return 0
    cols = list(patch)
    assignments = ", ".join(f"{c} = ?" for c in cols)
    if touch:
        assignments += ", updated_at = CURRENT_TIMESTAMP"
    cur = conn.execute(
        f"UPDATE {table} SET {assignments} WHERE {key_column} = ?",
        [patch[c] for c in cols] + [key],
    )
    return cur.rowcount
