from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional
import sqlite3

from ...modules.invoice_utilities.calculations import compute_line, validate_line
from ...modules.invoice_utilities.status import DELIVERY_NOTE, FINAL_INVOICE, PROFORMA
from ..transactions import transaction
from .row_helpers import to_dec


@dataclass
class InvoiceItem:
    item_id: int | None
    product_id: int | None
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    discount: Decimal
    total_excl: Decimal
    total_tax: Decimal
    total: Decimal
    position: int = 0
    product_code: Optional[str] = None
    product_name: Optional[str] = None


# document kind -> (link table, owner column)
LINK_TABLES: dict[str, tuple[str, str]] = {
    PROFORMA: ("proforma_invoice_items", "proforma_id"),
    FINAL_INVOICE: ("final_invoice_items", "final_invoice_id"),
    DELIVERY_NOTE: ("delivery_note_items", "delivery_note_id"),
}


def _link(kind: str) -> tuple[str, str]:
    try:
        return LINK_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown document kind: {kind!r}") from None


class InvoiceItemsRepo:
    """
    Line items and their ownership.

    An item row holds the priced snapshot; exactly one link row says which
    document it belongs to. Moving a line between documents rewrites the
    link and leaves the item untouched.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_items(self, kind: str, doc_id: int) -> list[InvoiceItem]:
        table, owner = _link(kind)
        rows = self.conn.execute(
            f"""
            SELECT ii.item_id, ii.product_id, ii.quantity, ii.unit_price, ii.tax_rate,
                   ii.discount, ii.total_excl, ii.total_tax, ii.total,
                   l.position, p.code AS product_code, p.name AS product_name
              FROM {table} l
              JOIN invoice_items ii ON ii.item_id = l.item_id
              LEFT JOIN products p  ON p.product_id = ii.product_id
             WHERE l.{owner} = ?
             ORDER BY l.position, ii.item_id
            """,
            (doc_id,),
        ).fetchall()
        return [
            InvoiceItem(
                item_id=int(r["item_id"]),
                product_id=r["product_id"],
                quantity=to_dec(r["quantity"]),
                unit_price=to_dec(r["unit_price"]),
                tax_rate=to_dec(r["tax_rate"]),
                discount=to_dec(r["discount"]),
                total_excl=to_dec(r["total_excl"]),
                total_tax=to_dec(r["total_tax"]),
                total=to_dec(r["total"]),
                position=int(r["position"]),
                product_code=r["product_code"],
                product_name=r["product_name"],
            )
            for r in rows
        ]

    def item_ids(self, kind: str, doc_id: int) -> list[int]:
        table, owner = _link(kind)
        rows = self.conn.execute(
            f"SELECT item_id FROM {table} WHERE {owner}=? ORDER BY position, item_id", (doc_id,)
        ).fetchall()
        return [int(r[0]) for r in rows]

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def _insert_item(self, line) -> int:
        v = validate_line(line)
        amounts = compute_line(v)
        cur = self.conn.execute(
            """
            INSERT INTO invoice_items (
                product_id, quantity, unit_price, tax_rate, discount,
                total_excl, total_tax, total
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                v.product_id,
                v.quantity,
                v.unit_price,
                v.tax_rate,
                v.discount,
                amounts.total_excl,
                amounts.total_tax,
                amounts.total,
            ),
        )
        return int(cur.lastrowid)

    def add_items(self, kind: str, doc_id: int, lines: Iterable) -> list[int]:
        """Insert priced items and link them to the document, in order."""
        table, owner = _link(kind)
        ids: list[int] = []
        with transaction(self.conn, operation="add_items", document=kind, ref=doc_id):
            start = self.conn.execute(
                f"SELECT COALESCE(MAX(position), -1) + 1 FROM {table} WHERE {owner}=?", (doc_id,)
            ).fetchone()[0]
            for pos, line in enumerate(lines, start=int(start)):
                item_id = self._insert_item(line)
                self.conn.execute(
                    f"INSERT INTO {table}(item_id, {owner}, position) VALUES (?, ?, ?)",
                    (item_id, doc_id, pos),
                )
                ids.append(item_id)
        return ids

    def delete_items(self, kind: str, doc_id: int) -> int:
        """Delete the document's items; link rows go with them (ON DELETE CASCADE)."""
        table, owner = _link(kind)
        cur = self.conn.execute(
            f"DELETE FROM invoice_items WHERE item_id IN (SELECT item_id FROM {table} WHERE {owner}=?)",
            (doc_id,),
        )
        return cur.rowcount

    def replace_items(self, kind: str, doc_id: int, lines: Iterable) -> list[int]:
        lines = list(lines)
        with transaction(self.conn, operation="replace_items", document=kind, ref=doc_id):
            self.delete_items(kind, doc_id)
            return self.add_items(kind, doc_id, lines)

    def move_links(self, src_kind: str, src_id: int, dst_kind: str, dst_id: int) -> int:
        """
        Re-home every item of (src_kind, src_id) onto (dst_kind, dst_id),
        keeping line order. Returns the number of items moved.
        """
        src_table, src_owner = _link(src_kind)
        dst_table, dst_owner = _link(dst_kind)
        with transaction(self.conn, operation="move_items", document=src_kind, ref=src_id):
            rows = self.conn.execute(
                f"SELECT item_id, position FROM {src_table} WHERE {src_owner}=? ORDER BY position, item_id",
                (src_id,),
            ).fetchall()
            self.conn.execute(f"DELETE FROM {src_table} WHERE {src_owner}=?", (src_id,))
            self.conn.executemany(
                f"INSERT INTO {dst_table}(item_id, {dst_owner}, position) VALUES (?, ?, ?)",
                [(int(r["item_id"]), dst_id, int(r["position"])) for r in rows],
            )
        return len(rows)
