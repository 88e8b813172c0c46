from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..database.repositories.products_repo import Product
from ..errors import ValidationError
from ..modules.invoice_utilities.calculations import DocumentTotals, compute_line, compute_totals
from ..utils.helpers import fmt_money


class LineItemsEditor(QWidget):
    """
    Editable grid of document lines.

    Picking a product fills unit price and tax rate from the catalogue;
    both stay editable. With priced=False only product and quantity are shown
    (delivery notes).
    """

    COL_PRODUCT, COL_QTY, COL_PRICE, COL_TAX, COL_DISCOUNT, COL_TOTAL = range(6)
    HEADERS = ["Product", "Qty", "Unit price", "TVA %", "Discount %", "Total"]

    changed = Signal()

    def __init__(self, products: list[Product], parent=None, *, priced: bool = True):
        super().__init__(parent)
        self._products = products
        self._by_id = {p.product_id: p for p in products}
        self.priced = priced

        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        self.table = QTableWidget(0, len(self.HEADERS))
        self.table.setHorizontalHeaderLabels(self.HEADERS)
        self.table.horizontalHeader().setStretchLastSection(True)
        if not priced:
            for col in (self.COL_PRICE, self.COL_TAX, self.COL_DISCOUNT, self.COL_TOTAL):
                self.table.setColumnHidden(col, True)
        root.addWidget(self.table)

        bar = QHBoxLayout()
        self.btn_add = QPushButton("Add line")
        self.btn_remove = QPushButton("Remove line")
        bar.addWidget(self.btn_add)
        bar.addWidget(self.btn_remove)
        bar.addStretch(1)
        root.addLayout(bar)

        self.btn_add.clicked.connect(lambda: self.add_line())
        self.btn_remove.clicked.connect(self.remove_current)
        self.table.itemChanged.connect(self._on_item_changed)

    # ---------------- rows ----------------

    def _product_combo(self, product_id: Optional[int]) -> QComboBox:
        combo = QComboBox()
        combo.addItem("(none)", None)
        for p in self._products:
            combo.addItem(f"{p.code} - {p.name}", p.product_id)
        if product_id is not None:
            idx = combo.findData(product_id)
            if idx >= 0:
                combo.setCurrentIndex(idx)
        return combo

    def add_line(self, product_id=None, quantity="1", unit_price=None, tax_rate=None, discount="0") -> int:
        row = self.table.rowCount()
        self.table.blockSignals(True)
        self.table.insertRow(row)
        combo = self._product_combo(product_id)
        self.table.setCellWidget(row, self.COL_PRODUCT, combo)
        product = self._by_id.get(product_id)
        if unit_price is None and product is not None:
            unit_price = product.unit_price
        if tax_rate is None and product is not None:
            tax_rate = product.tax_rate
        for col, value in (
            (self.COL_QTY, quantity),
            (self.COL_PRICE, unit_price if unit_price is not None else "0"),
            (self.COL_TAX, tax_rate if tax_rate is not None else "0"),
            (self.COL_DISCOUNT, discount if discount is not None else "0"),
        ):
            self.table.setItem(row, col, QTableWidgetItem(str(value)))
        total = QTableWidgetItem("")
        total.setFlags(total.flags() & ~Qt.ItemIsEditable)
        self.table.setItem(row, self.COL_TOTAL, total)
        self.table.blockSignals(False)
        combo.currentIndexChanged.connect(lambda _i, c=combo: self._on_product_changed(c))
        self._refresh_row(row)
        self.changed.emit()
        return row

    def remove_current(self):
        row = self.table.currentRow()
        if row < 0:
            row = self.table.rowCount() - 1
        if row >= 0:
            self.table.removeRow(row)
            self.changed.emit()

    def clear(self):
        self.table.setRowCount(0)
        self.changed.emit()

    def set_product(self, row: int, product_id: Optional[int]):
        combo: QComboBox = self.table.cellWidget(row, self.COL_PRODUCT)
        combo.setCurrentIndex(max(combo.findData(product_id), 0))

    def set_cell(self, row: int, col: int, value) -> None:
        self.table.item(row, col).setText(str(value))

    # ---------------- reading ----------------

    def _text(self, row: int, col: int) -> str:
        item = self.table.item(row, col)
        return item.text().strip() if item else ""

    def lines(self) -> list[dict]:
        out = []
        for row in range(self.table.rowCount()):
            combo: QComboBox = self.table.cellWidget(row, self.COL_PRODUCT)
            line = {
                "product_id": combo.currentData() if combo else None,
                "quantity": self._text(row, self.COL_QTY),
            }
            if self.priced:
                line.update(
                    unit_price=self._text(row, self.COL_PRICE),
                    tax_rate=self._text(row, self.COL_TAX),
                    discount=self._text(row, self.COL_DISCOUNT) or "0",
                )
            out.append(line)
        return out

    def totals(self, payment_type: str) -> Optional[DocumentTotals]:
        """Preview totals, or None while some line is still invalid."""
        try:
            return compute_totals(self.lines(), payment_type)
        except ValidationError:
            return None

    # ---------------- events ----------------

    def _on_product_changed(self, combo: QComboBox):
        for row in range(self.table.rowCount()):
            if self.table.cellWidget(row, self.COL_PRODUCT) is combo:
                product = self._by_id.get(combo.currentData())
                if product is not None:
                    self.table.blockSignals(True)
                    self.set_cell(row, self.COL_PRICE, product.unit_price)
                    self.set_cell(row, self.COL_TAX, product.tax_rate)
                    self.table.blockSignals(False)
                self._refresh_row(row)
                self.changed.emit()
                return

    def _on_item_changed(self, item: QTableWidgetItem):
        if item.column() != self.COL_TOTAL:
            self._refresh_row(item.row())
            self.changed.emit()

    def _refresh_row(self, row: int):
        if not self.priced:
            return
        try:
            amounts = compute_line(self.lines()[row])
            text = fmt_money(amounts.total)
        except ValidationError:
            text = "?"
        self.table.blockSignals(True)
        self.table.item(row, self.COL_TOTAL).setText(text)
        self.table.blockSignals(False)


class TotalsLabel(QLabel):
    def show_totals(self, totals: Optional[DocumentTotals]):
        if totals is None:
            self.setText("Totals: check the lines")
            return
        self.setText(
            f"Subtotal {fmt_money(totals.subtotal)}   TVA {fmt_money(totals.tax_total)}   "
            f"Stamp {fmt_money(totals.stamp_tax)}   Total {fmt_money(totals.total)}"
        )
