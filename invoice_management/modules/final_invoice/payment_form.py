from __future__ import annotations

from datetime import date

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QDateEdit, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QVBoxLayout,
)

from ...utils.helpers import fmt_money


class PaymentForm(QDialog):
    """
    Records the settlement of a final invoice: payment date and an optional
    reference (cheque number, transfer id).

    payload() -> {"payment_date": "YYYY-MM-DD", "payment_reference": str}
    """

    def __init__(self, parent=None, *, number: str = "", total=None, issue_date: str | None = None):
        super().__init__(parent)
        self.setWindowTitle(f"Payment for {number}" if number else "Payment")
        self.setModal(True)
        self._payload = None

        today = date.today()
        self.payment_date = QDateEdit(QDate(today.year, today.month, today.day))
        self.payment_date.setCalendarPopup(True)
        self.payment_date.setDisplayFormat("yyyy-MM-dd")
        if issue_date:
            d = date.fromisoformat(issue_date)
            self.payment_date.setMinimumDate(QDate(d.year, d.month, d.day))
        self.reference = QLineEdit()
        self.reference.setPlaceholderText("Cheque / transfer reference")

        form = QFormLayout()
        if total is not None:
            form.addRow("Amount", QLabel(fmt_money(total)))
        form.addRow("Payment date", self.payment_date)
        form.addRow("Reference", self.reference)

        root = QVBoxLayout(self)
        root.addLayout(form)
        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)

    def get_payload(self) -> dict:
        return {
            "payment_date": self.payment_date.date().toString("yyyy-MM-dd"),
            "payment_reference": self.reference.text().strip(),
        }

    def accept(self):
        self._payload = self.get_payload()
        super().accept()

    def payload(self):
        return self._payload
