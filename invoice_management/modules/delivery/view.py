from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLineEdit, QLabel,
    QSplitter, QComboBox,
)
from PySide6.QtCore import Qt

from ...modules.invoice_utilities.status import DELIVERY_NOTE, VALID_STATES, label
from ...widgets.document_items import DocumentItemsView, DocumentDetails
from ...widgets.table_view import TableView


class DeliveryNoteView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        bar = QHBoxLayout()
        self.btn_add = QPushButton("New")
        self.btn_edit = QPushButton("Edit")
        self.btn_delivered = QPushButton("Mark delivered")
        self.btn_del = QPushButton("Delete")
        self.btn_pdf = QPushButton("Export PDF…")
        for b in (self.btn_add, self.btn_edit, self.btn_delivered, self.btn_del, self.btn_pdf):
            bar.addWidget(b)
        bar.addStretch(1)
        bar.addWidget(QLabel("Status:"))
        self.status_filter = QComboBox()
        self.status_filter.addItem("All", "all")
        for s in VALID_STATES[DELIVERY_NOTE]:
            self.status_filter.addItem(label(s), s)
        bar.addWidget(self.status_filter)
        bar.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search delivery notes…")
        bar.addWidget(self.search, 2)
        root.addLayout(bar)

        split = QSplitter(Qt.Horizontal)
        left = QWidget()
        lv = QVBoxLayout(left)
        lv.setContentsMargins(0, 0, 0, 0)
        self.tbl = TableView()
        lv.addWidget(self.tbl, 3)
        self.items = DocumentItemsView(priced=False)
        lv.addWidget(self.items, 2)
        split.addWidget(left)
        self.details = DocumentDetails()
        split.addWidget(self.details)
        split.setStretchFactor(0, 3)
        split.setStretchFactor(1, 2)
        root.addWidget(split, 1)
