from __future__ import annotations

from datetime import date

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QVBoxLayout,
)

from ...database.repositories.delivery_notes_repo import TRANSPORT_FIELDS
from ...widgets.line_items_editor import LineItemsEditor

_TRANSPORT_LABELS = {
    "delivery_company": "Carrier",
    "driver_name": "Driver",
    "truck_id": "Truck",
}


def _qdate(iso: str | None) -> QDate:
    d = date.fromisoformat(iso) if iso else date.today()
    return QDate(d.year, d.month, d.day)


def _date_edit(iso: str | None) -> QDateEdit:
    w = QDateEdit(_qdate(iso))
    w.setCalendarPopup(True)
    w.setDisplayFormat("yyyy-MM-dd")
    return w


class TransportForm(QDialog):
    """
    Header of a delivery note: issue date, notes and transport details.
    Used on its own when the lines come from a final invoice.

    payload() -> {issue_date, notes, delivery_company, driver_name, truck_id}
    """

    def __init__(self, parent=None, *, title: str = "Delivery note", initial: dict | None = None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        initial = initial or {}
        self._payload = None

        self.issue_date = _date_edit(initial.get("issue_date"))
        self.notes = QPlainTextEdit(initial.get("notes") or "")
        self.notes.setMaximumHeight(60)
        self.transport = {k: QLineEdit(initial.get(k) or "") for k in TRANSPORT_FIELDS}

        self.form = QFormLayout()
        self.form.addRow("Issue date", self.issue_date)
        for k in TRANSPORT_FIELDS:
            self.form.addRow(_TRANSPORT_LABELS[k], self.transport[k])
        self.form.addRow("Notes", self.notes)

        self.root = QVBoxLayout(self)
        self.root.addLayout(self.form)
        self.error_label = QLabel()
        self.error_label.setStyleSheet("color:#b10000;")
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        self.root.addWidget(self.error_label)
        self.root.addWidget(self.buttons)

    def get_payload(self) -> dict | None:
        out = {
            "issue_date": self.issue_date.date().toString("yyyy-MM-dd"),
            "notes": self.notes.toPlainText().strip(),
        }
        out.update({k: w.text().strip() for k, w in self.transport.items()})
        return out

    def accept(self):
        p = self.get_payload()
        if p is None:
            return
        self._payload = p
        super().accept()

    def payload(self):
        return self._payload


class DeliveryNoteForm(TransportForm):
    """
    Full delivery note: client, optional final invoice link, transport and
    lines (product + quantity only).

    payload() adds {client_id, final_invoice_id, delivery_date, lines}
    """

    def __init__(
        self,
        clients,
        products,
        invoices,
        parent=None,
        *,
        title: str = "Delivery note",
        initial: dict | None = None,
        initial_lines: list | None = None,
    ):
        super().__init__(parent, title=title, initial=initial)
        self.resize(700, 520)
        initial = initial or {}

        self.client = QComboBox()
        for c in clients:
            self.client.addItem(c.name, c.client_id)
        if initial.get("client_id") is not None:
            self.client.setCurrentIndex(max(self.client.findData(initial["client_id"]), 0))
            self.client.setEnabled(False)

        self.invoice = QComboBox()
        self.invoice.addItem("(none)", None)
        for f in invoices:
            self.invoice.addItem(f"{f.number} · {f.client_name or ''}", f.final_invoice_id)
        if initial.get("final_invoice_id") is not None:
            self.invoice.setCurrentIndex(max(self.invoice.findData(initial["final_invoice_id"]), 0))

        self.delivered = QCheckBox("Delivered on")
        self.delivery_date = _date_edit(initial.get("delivery_date"))
        self.delivered.setChecked(bool(initial.get("delivery_date")))
        self.delivery_date.setEnabled(self.delivered.isChecked())
        self.delivered.toggled.connect(self.delivery_date.setEnabled)

        self.form.insertRow(0, "Client*", self.client)
        self.form.insertRow(1, "Final invoice", self.invoice)
        self.form.addRow(self.delivered, self.delivery_date)

        self.items = LineItemsEditor(products, self, priced=False)
        for it in initial_lines or []:
            self.items.add_line(product_id=it.product_id, quantity=it.quantity)
        self.root.insertWidget(self.root.indexOf(self.error_label), self.items, 1)

    def get_payload(self) -> dict | None:
        if self.client.currentData() is None:
            self.error_label.setText("Choose a client.")
            return None
        lines = self.items.lines()
        if not lines:
            self.error_label.setText("Add at least one line.")
            return None
        out = super().get_payload()
        out.update(
            client_id=self.client.currentData(),
            final_invoice_id=self.invoice.currentData(),
            delivery_date=self.delivery_date.date().toString("yyyy-MM-dd") if self.delivered.isChecked() else None,
            lines=lines,
        )
        return out
