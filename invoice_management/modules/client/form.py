from __future__ import annotations

import re

from PySide6.QtWidgets import (
    QDialog,
    QFormLayout,
    QDialogButtonBox,
    QVBoxLayout,
    QLineEdit,
    QPlainTextEdit,
    QLabel,
)

from ...utils.validators import is_email, non_empty


class ClientForm(QDialog):
    """
    Client create/edit form. Name is required; email is checked when given.

    payload() -> dict with name, address, tax_id, phone, email, country, city
    """

    def __init__(self, parent=None, initial: dict | None = None):
        super().__init__(parent)
        self.setWindowTitle("Client")
        self.setModal(True)
        initial = initial or {}

        self.name = QLineEdit(initial.get("name", ""))
        self.tax_id = QLineEdit(initial.get("tax_id", ""))
        self.phone = QLineEdit(initial.get("phone", ""))
        self.email = QLineEdit(initial.get("email", ""))
        self.address = QPlainTextEdit(initial.get("address", ""))
        self.address.setMaximumHeight(60)
        self.city = QLineEdit(initial.get("city", ""))
        self.country = QLineEdit(initial.get("country", ""))
        self.error_label = QLabel()
        self.error_label.setStyleSheet("color:#b10000;")

        form = QFormLayout()
        form.addRow("Name*", self.name)
        form.addRow("NIF", self.tax_id)
        form.addRow("Phone", self.phone)
        form.addRow("Email", self.email)
        form.addRow("Address", self.address)
        form.addRow("City", self.city)
        form.addRow("Country", self.country)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(self.error_label)
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)
        self._payload = None

    @staticmethod
    def _collapse_spaces(line: str) -> str:
        return re.sub(r"\s+", " ", line).strip()

    def get_payload(self) -> dict | None:
        if not non_empty(self.name.text()):
            self.error_label.setText("Name is required.")
            self.name.setFocus()
            return None
        email = self.email.text().strip()
        if email and not is_email(email):
            self.error_label.setText("Email address looks invalid.")
            self.email.setFocus()
            return None
        return {
            "name": self._collapse_spaces(self.name.text()),
            "tax_id": self.tax_id.text().strip(),
            "phone": self.phone.text().strip(),
            "email": email,
            "address": self.address.toPlainText().strip(),
            "city": self.city.text().strip(),
            "country": self.country.text().strip(),
        }

    def accept(self):
        p = self.get_payload()
        if p is None:
            return
        self._payload = p
        super().accept()

    def payload(self):
        return self._payload
