# invoice_management/database/repositories/reporting_repo.py
from __future__ import annotations

import calendar
import sqlite3
from typing import Optional

from .final_invoices_repo import FinalInvoice, FinalInvoicesRepo


class ReportingRepo:
    """
    Read-only inputs for the reporting tabs.

    Dates are ISO 'YYYY-MM-DD' text, so month windows are plain string
    comparisons that keep idx_final_issue_date usable.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.invoices = FinalInvoicesRepo(conn)

    @staticmethod
    def month_bounds(year: int, month: int) -> tuple[str, str]:
        last = calendar.monthrange(year, month)[1]
        return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"

    def final_invoices_for_month(self, year: int, month: int) -> list[FinalInvoice]:
        date_from, date_to = self.month_bounds(year, month)
        return self.invoices.list_invoices(date_from=date_from, date_to=date_to)

    def client_names(self, client_ids: Optional[set[int]] = None) -> dict[int, str]:
        rows = self.conn.execute("SELECT client_id, name FROM clients").fetchall()
        names = {int(r["client_id"]): r["name"] for r in rows}
        if client_ids is None:
            return names
        return {cid: names[cid] for cid in client_ids if cid in names}

    def invoice_years(self) -> list[int]:
        """Years that have at least one final invoice, newest first."""
        rows = self.conn.execute(
            "SELECT DISTINCT CAST(SUBSTR(issue_date, 1, 4) AS INTEGER) AS y "
            "FROM final_invoices ORDER BY y DESC"
        ).fetchall()
        return [int(r["y"]) for r in rows if r["y"]]

    def client_tax_ids(self) -> dict[int, str]:
        rows = self.conn.execute("SELECT client_id, tax_id FROM clients").fetchall()
        return {int(r["client_id"]): r["tax_id"] or "" for r in rows}

    def etat104(self, year: int, month: int):
        """Build the monthly État 104 from the stored final invoices."""
        from ...modules.reporting.etat104 import build_etat104

        if not 1 <= int(month) <= 12:
            # builder raises ValidationError for the month
            return build_etat104([], year, month)
        invoices = self.final_invoices_for_month(int(year), int(month))
        return build_etat104(
            invoices, year, month,
            client_names=self.client_names({f.client_id for f in invoices}),
            client_tax_ids=self.client_tax_ids(),
        )
