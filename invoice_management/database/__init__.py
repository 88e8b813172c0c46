# database/__init__.py
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
import sqlite3

from ..config import DB_PATH, BUSY_TIMEOUT
from ..constants import SCHEMA_VERSION
from ..utils.loggers import get_logger
from . import schema as schema_module
from .seeders.default_data import seed as seed_default_data
from .versioning import get_current_version, set_current_version

logger = get_logger(__name__)

# money and quantities go into TEXT columns exactly as written
sqlite3.register_adapter(Decimal, str)


def get_connection(db_path: Path | str | None = None, *, seed_admin: bool = True) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
      - autocommit (isolation_level=None); multi-statement work goes through
        database.transactions.transaction()
    Ensures schema & seed data are applied idempotently.
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.init_schema(path)

    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")

    if get_current_version(conn) is None:
        set_current_version(conn, SCHEMA_VERSION)
        logger.info("Initialised database %s (schema %s)", path, SCHEMA_VERSION)

    # Seeders should be safe to run repeatedly (idempotent).
    seed_default_data(conn, with_admin=seed_admin)
    return conn


__all__ = [
    "get_connection",
]
