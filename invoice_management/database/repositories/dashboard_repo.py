# invoice_management/database/repositories/dashboard_repo.py
from __future__ import annotations

from decimal import Decimal
import sqlite3

from .row_helpers import to_dec


class DashboardRepo:
    """
    Thin read-only queries for the dashboard cards.

    Money columns are TEXT; sums are done in Python with Decimal rather
    than SUM(CAST(... AS REAL)) so totals match the documents to the cent.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _count_by_status(self, table: str) -> dict[str, int]:
        rows = self.conn.execute(f"SELECT status, COUNT(*) AS n FROM {table} GROUP BY status").fetchall()
        return {r["status"]: int(r["n"]) for r in rows}

    def proforma_counts(self) -> dict[str, int]:
        return self._count_by_status("proforma_invoices")

    def final_invoice_counts(self) -> dict[str, int]:
        return self._count_by_status("final_invoices")

    def delivery_note_counts(self) -> dict[str, int]:
        return self._count_by_status("delivery_notes")

    def _sum_total(self, where: str, params: tuple = ()) -> Decimal:
        rows = self.conn.execute(f"SELECT total FROM final_invoices WHERE {where}", params).fetchall()
        return sum((to_dec(r["total"]) for r in rows), Decimal("0"))

    def outstanding_total(self) -> Decimal:
        return self._sum_total("status = 'unpaid'")

    def invoiced_total(self, date_from: str, date_to: str) -> Decimal:
        return self._sum_total("issue_date >= ? AND issue_date <= ?", (date_from, date_to))

    def overdue_invoices(self, as_of: str, limit: int = 10) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT f.final_invoice_id, f.number, f.due_date, f.total, c.name AS client_name
              FROM final_invoices f
              LEFT JOIN clients c ON c.client_id = f.client_id
             WHERE f.status = 'unpaid' AND f.due_date < ?
             ORDER BY f.due_date
             LIMIT ?
            """,
            (as_of, limit),
        ).fetchall()
        return [{**dict(r), "total": to_dec(r["total"])} for r in rows]

    def awaiting_conversion(self) -> int:
        """Approved proformas that have no final invoice yet."""
        row = self.conn.execute(
            "SELECT COUNT(*) FROM proforma_invoices WHERE status = 'approved' AND final_invoice_id IS NULL"
        ).fetchone()
        return int(row[0])
