from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from ...errors import NotFoundError
from ...modules.invoice_utilities.status import FINAL_INVOICE
from ..transactions import transaction
from .invoice_items_repo import InvoiceItemsRepo
from .row_helpers import patch_row, to_dec


@dataclass
class FinalInvoice:
    final_invoice_id: int | None
    number: str
    client_id: int
    issue_date: str
    due_date: str
    notes: str
    payment_type: str
    stamp_tax: Decimal
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal
    status: str = "unpaid"
    proforma_id: Optional[int] = None
    payment_date: Optional[str] = None
    payment_reference: Optional[str] = None
    created_by: Optional[int] = None
    client_name: Optional[str] = None
    proforma_number: Optional[str] = None


_EDITABLE = (
    "client_id", "issue_date", "due_date", "notes", "payment_type",
    "stamp_tax", "subtotal", "tax_total", "total", "status",
    "payment_date", "payment_reference",
)

_SELECT = """
    SELECT f.final_invoice_id, f.number, f.client_id, f.issue_date, f.due_date, f.notes,
           f.payment_type, f.stamp_tax, f.subtotal, f.tax_total, f.total, f.status,
           f.proforma_id, f.payment_date, f.payment_reference, f.created_by,
           c.name   AS client_name,
           p.number AS proforma_number
      FROM final_invoices f
      LEFT JOIN clients c           ON c.client_id = f.client_id
      LEFT JOIN proforma_invoices p ON p.proforma_id = f.proforma_id
"""


def _row_to_invoice(r: sqlite3.Row) -> FinalInvoice:
    return FinalInvoice(
        final_invoice_id=int(r["final_invoice_id"]),
        number=r["number"],
        client_id=int(r["client_id"]),
        issue_date=r["issue_date"],
        due_date=r["due_date"],
        notes=r["notes"] or "",
        payment_type=r["payment_type"],
        stamp_tax=to_dec(r["stamp_tax"]),
        subtotal=to_dec(r["subtotal"]),
        tax_total=to_dec(r["tax_total"]),
        total=to_dec(r["total"]),
        status=r["status"],
        proforma_id=r["proforma_id"],
        payment_date=r["payment_date"],
        payment_reference=r["payment_reference"],
        created_by=r["created_by"],
        client_name=r["client_name"],
        proforma_number=r["proforma_number"],
    )


class FinalInvoicesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.items = InvoiceItemsRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_invoices(
        self,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[FinalInvoice]:
        """Filter by status and inclusive ISO date range; newest first."""
        where, params = [], []
        if status:
            where.append("f.status = ?")
            params.append(status)
        if date_from:
            where.append("f.issue_date >= ?")
            params.append(date_from)
        if date_to:
            where.append("f.issue_date <= ?")
            params.append(date_to)
        sql = _SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY f.issue_date DESC, f.final_invoice_id DESC"
        return [_row_to_invoice(r) for r in self.conn.execute(sql, params).fetchall()]

    def search(self, term: str) -> list[FinalInvoice]:
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            _SELECT
            + " WHERE f.number LIKE ? OR c.name LIKE ? OR f.notes LIKE ? OR p.number LIKE ?"
            + " ORDER BY f.issue_date DESC, f.final_invoice_id DESC",
            (pattern,) * 4,
        ).fetchall()
        return [_row_to_invoice(r) for r in rows]

    def get(self, final_invoice_id: int) -> FinalInvoice | None:
        r = self.conn.execute(_SELECT + " WHERE f.final_invoice_id=?", (final_invoice_id,)).fetchone()
        return _row_to_invoice(r) if r else None

    def get_by_number(self, number: str) -> FinalInvoice | None:
        r = self.conn.execute(_SELECT + " WHERE f.number=?", (number,)).fetchone()
        return _row_to_invoice(r) if r else None

    def get_by_proforma(self, proforma_id: int) -> FinalInvoice | None:
        r = self.conn.execute(_SELECT + " WHERE f.proforma_id=?", (proforma_id,)).fetchone()
        return _row_to_invoice(r) if r else None

    def require(self, final_invoice_id: int, operation: str | None = None) -> FinalInvoice:
        f = self.get(final_invoice_id)
        if f is None:
            raise NotFoundError(
                f"Final invoice {final_invoice_id} not found.",
                document=FINAL_INVOICE, ref=final_invoice_id, operation=operation,
            )
        return f

    def list_items(self, final_invoice_id: int):
        return self.items.list_items(FINAL_INVOICE, final_invoice_id)

    def link_mismatches(self) -> list[dict]:
        """
        Rows where the two sides of the proforma/final link disagree.
        Empty when the data is consistent.
        """
        rows = self.conn.execute(
            """
            SELECT 'final_invoice' AS side, f.final_invoice_id, f.proforma_id, p.final_invoice_id AS back_ref
              FROM final_invoices f
              LEFT JOIN proforma_invoices p ON p.proforma_id = f.proforma_id
             WHERE f.proforma_id IS NOT NULL
               AND (p.proforma_id IS NULL OR p.final_invoice_id IS NOT f.final_invoice_id)
            UNION ALL
            SELECT 'proforma', p.final_invoice_id, p.proforma_id, f.proforma_id
              FROM proforma_invoices p
              LEFT JOIN final_invoices f ON f.final_invoice_id = p.final_invoice_id
             WHERE p.final_invoice_id IS NOT NULL
               AND (f.final_invoice_id IS NULL OR f.proforma_id IS NOT p.proforma_id)
            """
        ).fetchall()
        return [dict(r) for r in rows]

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def insert(
        self,
        *,
        number: str,
        client_id: int,
        issue_date: str,
        due_date: str,
        notes: str,
        payment_type: str,
        stamp_tax: Decimal,
        subtotal: Decimal,
        tax_total: Decimal,
        total: Decimal,
        proforma_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO final_invoices (
                number, client_id, issue_date, due_date, notes, payment_type,
                stamp_tax, subtotal, tax_total, total, status, proforma_id, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'unpaid', ?, ?)
            """,
            (
                number, client_id, issue_date, due_date, notes or "", payment_type,
                stamp_tax, subtotal, tax_total, total, proforma_id, created_by,
            ),
        )
        return int(cur.lastrowid)

    def update(self, final_invoice_id: int, **patch) -> None:
        changed = patch_row(self.conn, "final_invoices", "final_invoice_id", final_invoice_id, patch, _EDITABLE)
        if changed == 0 and patch:
            raise NotFoundError(
                f"Final invoice {final_invoice_id} not found.", document=FINAL_INVOICE, ref=final_invoice_id
            )

    def delete(self, final_invoice_id: int) -> None:
        """Remove the header and any items still linked to it."""
        with transaction(self.conn, operation="delete", document=FINAL_INVOICE, ref=final_invoice_id):
            self.items.delete_items(FINAL_INVOICE, final_invoice_id)
            self.conn.execute("DELETE FROM final_invoices WHERE final_invoice_id=?", (final_invoice_id,))
