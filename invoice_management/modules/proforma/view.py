from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLineEdit, QLabel,
    QSplitter, QComboBox,
)
from PySide6.QtCore import Qt

from ...modules.invoice_utilities.status import PROFORMA, VALID_STATES, label
from ...widgets.document_items import DocumentItemsView, DocumentDetails
from ...widgets.table_view import TableView


class ProformaView(QWidget):
    """
    Proforma list with lifecycle toolbar, line items below the list and the
    header facts on the right.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        bar = QHBoxLayout()
        self.btn_add = QPushButton("New")
        self.btn_edit = QPushButton("Edit")
        self.btn_send = QPushButton("Send")
        self.btn_approve = QPushButton("Approve")
        self.btn_reject = QPushButton("Reject")
        self.btn_undo_approve = QPushButton("Undo approval")
        self.btn_convert = QPushButton("Convert to invoice")
        self.btn_undo_convert = QPushButton("Undo conversion")
        self.btn_del = QPushButton("Delete")
        self.btn_pdf = QPushButton("Export PDF…")
        for b in (
            self.btn_add, self.btn_edit, self.btn_send, self.btn_approve, self.btn_reject,
            self.btn_undo_approve, self.btn_convert, self.btn_undo_convert, self.btn_del, self.btn_pdf,
        ):
            bar.addWidget(b)
        bar.addStretch(1)
        root.addLayout(bar)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Status:"))
        self.status_filter = QComboBox()
        self.status_filter.addItem("All", "all")
        for s in VALID_STATES[PROFORMA]:
            self.status_filter.addItem(label(s), s)
        filters.addWidget(self.status_filter)
        filters.addStretch(1)
        filters.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search proformas (number, client, date)…")
        filters.addWidget(self.search, 2)
        root.addLayout(filters)

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
