from __future__ import annotations

from datetime import date, timedelta

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
)

from ..database.repositories.clients_repo import Client
from ..database.repositories.products_repo import Product
from ..modules.invoice_utilities.calculations import PAYMENT_TYPES
from .line_items_editor import LineItemsEditor, TotalsLabel


def _qdate(iso: str | None) -> QDate:
    d = date.fromisoformat(iso) if iso else date.today()
    return QDate(d.year, d.month, d.day)


class DocumentForm(QDialog):
    """
    Create/edit dialog for priced documents (proformas, direct final invoices).

    payload() -> {client_id, issue_date, due_date, payment_type, notes, lines}
    """

    def __init__(
        self,
        clients: list[Client],
        products: list[Product],
        parent=None,
        *,
        title: str = "Document",
        initial: dict | None = None,
        initial_lines: list | None = None,
    ):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.resize(820, 560)
        initial = initial or {}

        self.client = QComboBox()
        for c in clients:
            self.client.addItem(c.name, c.client_id)
        if initial.get("client_id") is not None:
            self.client.setCurrentIndex(max(self.client.findData(initial["client_id"]), 0))

        self.issue_date = QDateEdit(_qdate(initial.get("issue_date")))
        self.issue_date.setCalendarPopup(True)
        self.issue_date.setDisplayFormat("yyyy-MM-dd")
        due_default = initial.get("due_date") or (date.today() + timedelta(days=30)).isoformat()
        self.due_date = QDateEdit(_qdate(due_default))
        self.due_date.setCalendarPopup(True)
        self.due_date.setDisplayFormat("yyyy-MM-dd")

        self.payment_type = QComboBox()
        for p in PAYMENT_TYPES:
            self.payment_type.addItem(p.capitalize(), p)
        self.payment_type.setCurrentIndex(max(self.payment_type.findData(initial.get("payment_type", "cheque")), 0))

        self.notes = QPlainTextEdit(initial.get("notes") or "")
        self.notes.setMaximumHeight(70)

        self.items = LineItemsEditor(products, self)
        for it in initial_lines or []:
            self.items.add_line(
                product_id=it.product_id,
                quantity=it.quantity,
                unit_price=it.unit_price,
                tax_rate=it.tax_rate,
                discount=it.discount,
            )
        self.totals = TotalsLabel()
        self.error_label = QLabel()
        self.error_label.setStyleSheet("color:#b10000;")

        form = QFormLayout()
        form.addRow("Client*", self.client)
        form.addRow("Issue date", self.issue_date)
        form.addRow("Due date", self.due_date)
        form.addRow("Payment", self.payment_type)
        form.addRow("Notes", self.notes)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(self.items, 1)
        root.addWidget(self.totals)
        root.addWidget(self.error_label)
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

        self.items.changed.connect(self._refresh_totals)
        self.payment_type.currentIndexChanged.connect(self._refresh_totals)
        self._refresh_totals()
        self._payload = None

    def _refresh_totals(self):
        self.totals.show_totals(self.items.totals(self.payment_type.currentData()))

    def get_payload(self) -> dict | None:
        if self.client.currentData() is None:
            self.error_label.setText("Choose a client.")
            return None
        lines = self.items.lines()
        if not lines:
            self.error_label.setText("Add at least one line.")
            return None
        return {
            "client_id": self.client.currentData(),
            "issue_date": self.issue_date.date().toString("yyyy-MM-dd"),
            "due_date": self.due_date.date().toString("yyyy-MM-dd"),
            "payment_type": self.payment_type.currentData(),
            "notes": self.notes.toPlainText().strip(),
            "lines": lines,
        }

    def accept(self):
        p = self.get_payload()
        if p is None:
            return
        self._payload = p
        super().accept()

    def payload(self):
        return self._payload
