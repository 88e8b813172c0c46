from __future__ import annotations

import html
from typing import Iterable

from PySide6.QtWidgets import QWidget, QVBoxLayout, QLabel, QGroupBox
from PySide6.QtCore import Qt

from ..modules.invoice_utilities.status import label, style_tokens
from ..utils.helpers import fmt_money, fmt_percent
from .rows_model import RowsTableModel
from .table_view import TableView


class ItemsTableModel(RowsTableModel):
    HEADERS = ["Code", "Product", "Qty", "Unit price", "VAT", "Disc.", "Excl. VAT", "Total"]

    def values(self, it):
        return [
            it.product_code or "",
            it.product_name or "(removed product)",
            f"{it.quantity.normalize():f}",
            it.unit_price,
            fmt_percent(it.tax_rate),
            fmt_percent(it.discount),
            it.total_excl,
            it.total,
        ]


class DeliveryItemsTableModel(RowsTableModel):
    HEADERS = ["Code", "Product", "Qty"]

    def values(self, it):
        return [
            it.product_code or "",
            it.product_name or "(removed product)",
            f"{it.quantity.normalize():f}",
        ]


class DocumentItemsView(QWidget):
    def __init__(self, parent=None, *, priced: bool = True):
        super().__init__(parent)
        box = QGroupBox("Lines")
        v = QVBoxLayout(box)
        self.table = TableView()
        self.model = ItemsTableModel([]) if priced else DeliveryItemsTableModel([])
        self.table.setModel(self.model)
        v.addWidget(self.table, 1)
        lay = QVBoxLayout(self)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.addWidget(box, 1)

    def set_rows(self, rows: list):
        self.model.replace(rows)
        self.table.resizeColumnsToContents()


def status_badge(state: str) -> str:
    """Rich-text badge for a document status."""
    s = style_tokens(state)
    return (
        f'<span style="color:{s["fg"]}; background-color:{s["bg"]};">'
        f"&nbsp;{html.escape(label(state))}&nbsp;</span>"
    )


class DocumentDetails(QWidget):
    """
    Read-only panel with the selected document's header facts.
    set_fields() takes (caption, value) pairs; Decimal-like values should be
    pre-formatted by the caller except for the totals block.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.body = QLabel()
        self.body.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        self.body.setWordWrap(True)
        self.body.setTextInteractionFlags(Qt.TextSelectableByMouse)
        lay = QVBoxLayout(self)
        lay.addWidget(self.body, 1)
        self.clear()

    def clear(self):
        self.body.setText("Nothing selected.")

    def set_fields(self, title: str, status: str, fields: Iterable[tuple[str, object]], totals=None):
        parts = [f"<h3>{html.escape(title)}</h3>", status_badge(status), "<br><br>"]
        for caption, value in fields:
            if value in (None, ""):
                continue
            parts.append(f"<b>{html.escape(caption)}:</b> {html.escape(str(value))}<br>")
        if totals is not None:
            parts.append("<br><table>")
            for caption, amount in (
                ("Subtotal", totals.subtotal),
                ("VAT", totals.tax_total),
                ("Stamp tax", totals.stamp_tax),
                ("Total", totals.total),
            ):
                parts.append(f"<tr><td>{caption}</td><td align='right'>{fmt_money(amount)}</td></tr>")
            parts.append("</table>")
        self.body.setText("".join(parts))
