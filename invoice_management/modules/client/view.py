from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLineEdit,
    QLabel,
    QSplitter,
)
from PySide6.QtCore import Qt

from ...widgets.table_view import TableView


class ClientView(QWidget):
    """
    Clients view:
      - Toolbar: Add, Edit, Delete + search
      - Split: table (left) + details (right)
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        bar = QHBoxLayout()
        self.btn_add = QPushButton("Add")
        self.btn_edit = QPushButton("Edit")
        self.btn_del = QPushButton("Delete")
        bar.addWidget(self.btn_add)
        bar.addWidget(self.btn_edit)
        bar.addWidget(self.btn_del)
        bar.addStretch(1)
        bar.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search clients (name, NIF, phone, email, city)…")
        bar.addWidget(self.search, 2)
        root.addLayout(bar)

        split = QSplitter(Qt.Horizontal)
        self.table = TableView()
        split.addWidget(self.table)
        self.details = QLabel()
        self.details.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        self.details.setWordWrap(True)
        self.details.setTextInteractionFlags(Qt.TextSelectableByMouse)
        split.addWidget(self.details)
        split.setStretchFactor(0, 3)
        split.setStretchFactor(1, 2)
        root.addWidget(split, 1)

    def set_editable(self, editable: bool):
        for b in (self.btn_add, self.btn_edit, self.btn_del):
            b.setEnabled(editable)
