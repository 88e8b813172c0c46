from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLineEdit, QLabel,
    QSplitter, QComboBox,
)
from PySide6.QtCore import Qt

from ...modules.invoice_utilities.status import FINAL_INVOICE, VALID_STATES, label
from ...widgets.document_items import DocumentItemsView, DocumentDetails
from ...widgets.table_view import TableView


class FinalInvoiceView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        bar = QHBoxLayout()
        self.btn_add = QPushButton("New invoice")
        self.btn_mark_paid = QPushButton("Record payment…")
        self.btn_delivery = QPushButton("Delivery note…")
        self.btn_pdf = QPushButton("Export PDF…")
        for b in (self.btn_add, self.btn_mark_paid, self.btn_delivery, self.btn_pdf):
            bar.addWidget(b)
        bar.addStretch(1)
        bar.addWidget(QLabel("Status:"))
        self.status_filter = QComboBox()
        self.status_filter.addItem("All", "all")
        for s in VALID_STATES[FINAL_INVOICE]:
            self.status_filter.addItem(label(s), s)
        bar.addWidget(self.status_filter)
        bar.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search invoices (number, client, date)…")
        bar.addWidget(self.search, 2)
        root.addLayout(bar)

        split = QSplitter(Qt.Horizontal)
        left = QWidget()
        lv = QVBoxLayout(left)
        lv.setContentsMargins(0, 0, 0, 0)
        self.tbl = TableView()
        lv.addWidget(self.tbl, 3)
        self.items = DocumentItemsView()
        lv.addWidget(self.items, 2)
        split.addWidget(left)
        self.details = DocumentDetails()
        split.addWidget(self.details)
        split.setStretchFactor(0, 3)
        split.setStretchFactor(1, 2)
        root.addWidget(split, 1)
