from __future__ import annotations

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ...database.repositories.company_repo import CompanyInfo
from ...session import ROLES, ROLE_VIEWER
from ...utils.auth import password_problem
from ...utils.validators import is_email, non_empty


class UserForm(QDialog):
    """New account created by an administrator (confirmed immediately)."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("New user")
        self.setModal(True)
        self._payload = None

        self.email = QLineEdit()
        self.name = QLineEdit()
        self.password = QLineEdit()
        self.password.setEchoMode(QLineEdit.Password)
        self.role = QComboBox()
        for r in ROLES:
            self.role.addItem(r.capitalize(), r)
        self.role.setCurrentIndex(self.role.findData(ROLE_VIEWER))

        form = QFormLayout()
        form.addRow("Email*", self.email)
        form.addRow("Name*", self.name)
        form.addRow("Password*", self.password)
        form.addRow("Role", self.role)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color:#b10000;")
        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(self.error_label)
        root.addWidget(buttons)

    def get_payload(self) -> dict | None:
        if not is_email(self.email.text()):
            self.error_label.setText("Enter a valid email address.")
            return None
        if not non_empty(self.name.text()):
            self.error_label.setText("Name is required.")
            return None
        problem = password_problem(self.password.text())
        if problem:
            self.error_label.setText(problem)
            return None
        return {
            "email": self.email.text().strip(),
            "name": self.name.text().strip(),
            "password": self.password.text(),
            "role": self.role.currentData(),
        }

    def accept(self):
        p = self.get_payload()
        if p is None:
            return
        self._payload = p
        super().accept()

    def payload(self):
        return self._payload


class CompanyForm(QWidget):
    """Inline editor for the company header printed on documents."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.business_name = QLineEdit()
        self.address = QPlainTextEdit()
        self.address.setMaximumHeight(70)
        self.tax_id = QLineEdit()
        self.commerce_reg_number = QLineEdit()
        self.phone = QLineEdit()
        self.email = QLineEdit()
        self.btn_save = QPushButton("Save")

        form = QFormLayout()
        form.addRow("Business name*", self.business_name)
        form.addRow("Address", self.address)
        form.addRow("NIF", self.tax_id)
        form.addRow("RC number", self.commerce_reg_number)
        form.addRow("Phone", self.phone)
        form.addRow("Email", self.email)
        form.addRow("", self.btn_save)
        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addStretch(1)

    def set_company(self, c: CompanyInfo) -> None:
        self.business_name.setText(c.business_name)
        self.address.setPlainText(c.address)
        self.tax_id.setText(c.tax_id)
        self.commerce_reg_number.setText(c.commerce_reg_number)
        self.phone.setText(c.phone)
        self.email.setText(c.email)

    def values(self) -> dict:
        return {
            "business_name": self.business_name.text(),
            "address": self.address.toPlainText(),
            "tax_id": self.tax_id.text(),
            "commerce_reg_number": self.commerce_reg_number.text(),
            "phone": self.phone.text(),
            "email": self.email.text(),
        }
