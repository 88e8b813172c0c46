# database/numbering.py
"""
Document numbers: <letter>-<year>-<NNNN>, e.g. P-2025-0007.

Each prefix has a row in document_sequences holding the last value handed
out. The first time a prefix is used the counter starts from the highest
number already present in the document table, so imported data is never
overwritten. Numbers are not re-issued after a deletion.
"""
from __future__ import annotations

from datetime import date
import sqlite3

from .transactions import transaction

PROFORMA_PREFIX = "P"
INVOICE_PREFIX = "F"
DELIVERY_NOTE_PREFIX = "D"

_TABLES = {
    PROFORMA_PREFIX: "proforma_invoices",
    INVOICE_PREFIX: "final_invoices",
    DELIVERY_NOTE_PREFIX: "delivery_notes",
}


def _year_of(issue_date: str | date | None) -> int:
    if issue_date is None:
        return date.today().year
    if isinstance(issue_date, date):
        return issue_date.year
    return int(str(issue_date)[:4])


def _next_number(conn: sqlite3.Connection, letter: str, issue_date) -> str:
    prefix = f"{letter}-{_year_of(issue_date)}-"
    table = _TABLES[letter]
    with transaction(conn, operation="allocate_number"):
        conn.execute(
            f"""
            INSERT OR IGNORE INTO document_sequences(prefix, last_value)
            SELECT ?, COALESCE(MAX(CAST(SUBSTR(number, ?) AS INTEGER)), 0)
              FROM {table}
             WHERE number LIKE ?
            """,
            (prefix, len(prefix) + 1, prefix + "%"),
        )
        conn.execute(
            "UPDATE document_sequences SET last_value = last_value + 1 WHERE prefix=?",
            (prefix,),
        )
        row = conn.execute(
            "SELECT last_value FROM document_sequences WHERE prefix=?", (prefix,)
        ).fetchone()
    return f"{prefix}{int(row[0]):04d}"


def generate_proforma_number(conn: sqlite3.Connection, issue_date=None) -> str:
    return _next_number(conn, PROFORMA_PREFIX, issue_date)


def generate_invoice_number(conn: sqlite3.Connection, issue_date=None) -> str:
    return _next_number(conn, INVOICE_PREFIX, issue_date)


def generate_delivery_note_number(conn: sqlite3.Connection, issue_date=None) -> str:
    return _next_number(conn, DELIVERY_NOTE_PREFIX, issue_date)


__all__ = [
    "generate_proforma_number",
    "generate_invoice_number",
    "generate_delivery_note_number",
]
