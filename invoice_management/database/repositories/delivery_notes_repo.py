from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import sqlite3

from ...errors import NotFoundError
from ...modules.invoice_utilities.status import DELIVERY_NOTE
from ..transactions import transaction
from .invoice_items_repo import InvoiceItemsRepo
from .row_helpers import patch_row


@dataclass
class DeliveryNote:
    delivery_note_id: int | None
    number: str
    client_id: int
    issue_date: str
    delivery_date: Optional[str] = None
    notes: str = ""
    status: str = "pending"
    final_invoice_id: Optional[int] = None
    delivery_company: Optional[str] = None
    driver_name: Optional[str] = None
    truck_id: Optional[str] = None
    created_by: Optional[int] = None
    client_name: Optional[str] = None
    final_invoice_number: Optional[str] = None


TRANSPORT_FIELDS = ("delivery_company", "driver_name", "truck_id")

_EDITABLE = (
    "client_id", "final_invoice_id", "issue_date", "delivery_date", "notes", "status",
) + TRANSPORT_FIELDS

_SELECT = """
    SELECT d.delivery_note_id, d.number, d.client_id, d.issue_date, d.delivery_date,
           d.notes, d.status, d.final_invoice_id, d.delivery_company, d.driver_name,
           d.truck_id, d.created_by,
           c.name   AS client_name,
           f.number AS final_invoice_number
      FROM delivery_notes d
      LEFT JOIN clients c        ON c.client_id = d.client_id
      LEFT JOIN final_invoices f ON f.final_invoice_id = d.final_invoice_id
"""


class DeliveryNotesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.items = InvoiceItemsRepo(conn)

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_notes(self, status: Optional[str] = None) -> list[DeliveryNote]:
        if status:
            rows = self.conn.execute(
                _SELECT + " WHERE d.status=? ORDER BY d.issue_date DESC, d.delivery_note_id DESC", (status,)
            ).fetchall()
        else:
            rows = self.conn.execute(
                _SELECT + " ORDER BY d.issue_date DESC, d.delivery_note_id DESC"
            ).fetchall()
        return [DeliveryNote(**r) for r in rows]

    def search(self, term: str) -> list[DeliveryNote]:
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            _SELECT
            + " WHERE d.number LIKE ? OR c.name LIKE ? OR f.number LIKE ? OR d.driver_name LIKE ?"
            + " ORDER BY d.issue_date DESC, d.delivery_note_id DESC",
            (pattern,) * 4,
        ).fetchall()
        return [DeliveryNote(**r) for r in rows]

    def list_for_invoice(self, final_invoice_id: int) -> list[DeliveryNote]:
        rows = self.conn.execute(
            _SELECT + " WHERE d.final_invoice_id=? ORDER BY d.delivery_note_id", (final_invoice_id,)
        ).fetchall()
        return [DeliveryNote(**r) for r in rows]

    def get(self, delivery_note_id: int) -> DeliveryNote | None:
        r = self.conn.execute(_SELECT + " WHERE d.delivery_note_id=?", (delivery_note_id,)).fetchone()
        return DeliveryNote(**r) if r else None

    def require(self, delivery_note_id: int, operation: str | None = None) -> DeliveryNote:
        d = self.get(delivery_note_id)
        if d is None:
            raise NotFoundError(
                f"Delivery note {delivery_note_id} not found.",
                document=DELIVERY_NOTE, ref=delivery_note_id, operation=operation,
            )
        return d

    def list_items(self, delivery_note_id: int):
        return self.items.list_items(DELIVERY_NOTE, delivery_note_id)

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def insert(
        self,
        *,
        number: str,
        client_id: int,
        issue_date: str,
        delivery_date: Optional[str] = None,
        notes: str = "",
        final_invoice_id: Optional[int] = None,
        delivery_company: Optional[str] = None,
        driver_name: Optional[str] = None,
        truck_id: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO delivery_notes (
                number, client_id, final_invoice_id, issue_date, delivery_date, notes,
                status, delivery_company, driver_name, truck_id, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?, ?, ?)
            """,
            (
                number, client_id, final_invoice_id, issue_date, delivery_date, notes or "",
                delivery_company, driver_name, truck_id, created_by,
            ),
        )
        return int(cur.lastrowid)

    def update(self, delivery_note_id: int, **patch) -> None:
        changed = patch_row(self.conn, "delivery_notes", "delivery_note_id", delivery_note_id, patch, _EDITABLE)
        if changed == 0 and patch:
            raise NotFoundError(
                f"Delivery note {delivery_note_id} not found.", document=DELIVERY_NOTE, ref=delivery_note_id
            )

    def delete(self, delivery_note_id: int) -> None:
        with transaction(self.conn, operation="delete", document=DELIVERY_NOTE, ref=delivery_note_id):
            self.items.delete_items(DELIVERY_NOTE, delivery_note_id)
            self.conn.execute("DELETE FROM delivery_notes WHERE delivery_note_id=?", (delivery_note_id,))
