from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import sqlite3

from ...errors import NotFoundError
from ...modules.invoice_utilities.status import FINAL_INVOICE, PROFORMA
from ..transactions import transaction
from .invoice_items_repo import InvoiceItemsRepo
from .row_helpers import patch_row, to_dec


@dataclass
class ProformaInvoice:
    proforma_id: int | None
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
    status: str = "draft"
    final_invoice_id: Optional[int] = None
    created_by: Optional[int] = None
    client_name: Optional[str] = None
    final_invoice_number: Optional[str] = None

    @property
    def converted(self) -> bool:
        return self.final_invoice_id is not None


_EDITABLE = (
    "client_id", "issue_date", "due_date", "notes", "payment_type",
    "stamp_tax", "subtotal", "tax_total", "total", "status", "final_invoice_id",
)

_SELECT = """
    SELECT p.proforma_id, p.number, p.client_id, p.issue_date, p.due_date, p.notes,
           p.payment_type, p.stamp_tax, p.subtotal, p.tax_total, p.total, p.status,
           p.final_invoice_id, p.created_by,
           c.name   AS client_name,
           f.number AS final_invoice_number
      FROM proforma_invoices p
      LEFT JOIN clients c        ON c.client_id = p.client_id
      LEFT JOIN final_invoices f ON f.final_invoice_id = p.final_invoice_id
"""


def _row_to_proforma(r: sqlite3.Row) -> ProformaInvoice:
    return ProformaInvoice(
        proforma_id=int(r["proforma_id"]),
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
        final_invoice_id=r["final_invoice_id"],
        created_by=r["created_by"],
        client_name=r["client_name"],
        final_invoice_number=r["final_invoice_number"],
    )


class ProformaRepo:
    """
    Proforma invoice headers. Items live in invoice_items and are linked via
    proforma_invoice_items; after conversion they are linked to the final
    invoice instead, and list_items() follows them there.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.items = InvoiceItemsRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_proformas(self, status: Optional[str] = None) -> list[ProformaInvoice]:
        if status:
            rows = self.conn.execute(
                _SELECT + " WHERE p.status=? ORDER BY p.issue_date DESC, p.proforma_id DESC", (status,)
            ).fetchall()
        else:
            rows = self.conn.execute(
                _SELECT + " ORDER BY p.issue_date DESC, p.proforma_id DESC"
            ).fetchall()
        return [_row_to_proforma(r) for r in rows]

    def search(self, term: str) -> list[ProformaInvoice]:
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            _SELECT
            + " WHERE p.number LIKE ? OR c.name LIKE ? OR p.notes LIKE ?"
            + " ORDER BY p.issue_date DESC, p.proforma_id DESC",
            (pattern, pattern, pattern),
        ).fetchall()
        return [_row_to_proforma(r) for r in rows]

    def get(self, proforma_id: int) -> ProformaInvoice | None:
        r = self.conn.execute(_SELECT + " WHERE p.proforma_id=?", (proforma_id,)).fetchone()
        return _row_to_proforma(r) if r else None

    def get_by_number(self, number: str) -> ProformaInvoice | None:
        r = self.conn.execute(_SELECT + " WHERE p.number=?", (number,)).fetchone()
        return _row_to_proforma(r) if r else None

    def require(self, proforma_id: int, operation: str | None = None) -> ProformaInvoice:
        p = self.get(proforma_id)
        if p is None:
            raise NotFoundError(
                f"Proforma invoice {proforma_id} not found.",
                document=PROFORMA, ref=proforma_id, operation=operation,
            )
        return p

    def list_items(self, proforma_id: int):
        """
        The proforma's lines. A converted proforma has handed its lines to the
        final invoice, so those are returned instead.
        """
        items = self.items.list_items(PROFORMA, proforma_id)
        if items:
            return items
        p = self.get(proforma_id)
        if p is not None and p.final_invoice_id is not None:
            return self.items.list_items(FINAL_INVOICE, p.final_invoice_id)
        return items

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
        created_by: Optional[int] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO proforma_invoices (
                number, client_id, issue_date, due_date, notes, payment_type,
                stamp_tax, subtotal, tax_total, total, status, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'draft', ?)
            """,
            (
                number, client_id, issue_date, due_date, notes or "", payment_type,
                stamp_tax, subtotal, tax_total, total, created_by,
            ),
        )
        return int(cur.lastrowid)

    def update(self, proforma_id: int, **patch) -> None:
        if patch_row(self.conn, "proforma_invoices", "proforma_id", proforma_id, patch, _EDITABLE) == 0 and patch:
            raise NotFoundError(
                f"Proforma invoice {proforma_id} not found.", document=PROFORMA, ref=proforma_id
            )

    def set_status(self, proforma_id: int, status: str) -> None:
        self.update(proforma_id, status=status)

    def set_final_invoice(self, proforma_id: int, final_invoice_id: Optional[int]) -> None:
        self.update(proforma_id, final_invoice_id=final_invoice_id)

    def delete(self, proforma_id: int) -> None:
        with transaction(self.conn, operation="delete", document=PROFORMA, ref=proforma_id):
            self.items.delete_items(PROFORMA, proforma_id)
            self.conn.execute("DELETE FROM proforma_invoices WHERE proforma_id=?", (proforma_id,))
