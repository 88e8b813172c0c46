from PySide6.QtWidgets import (
    QDialog, QFormLayout, QLineEdit, QDialogButtonBox, QVBoxLayout, QLabel, QSpinBox,
)

from ...utils.validators import non_empty, is_non_negative_number, parse_decimal


class ProductForm(QDialog):
    """
    Product create/edit dialog. Prices and rates are read as Decimal strings;
    the repository re-validates everything (code uniqueness included).
    """

    def __init__(self, parent=None, initial_product=None):
        super().__init__(parent)
        self.setWindowTitle("Product")
        self.setModal(True)
        self._payload = None
        root = QVBoxLayout(self)

        self.code = QLineEdit()
        self.name = QLineEdit()
        self.desc = QLineEdit()
        self.unit_price = QLineEdit()
        self.unit_price.setPlaceholderText("0.00")
        self.tax_rate = QLineEdit()
        self.tax_rate.setPlaceholderText("19")
        self.stock = QSpinBox()
        self.stock.setRange(0, 10_000_000)

        form = QFormLayout()
        form.addRow("Code*", self.code)
        form.addRow("Name*", self.name)
        form.addRow("Description", self.desc)
        form.addRow("Unit price*", self.unit_price)
        form.addRow("VAT rate %*", self.tax_rate)
        form.addRow("Stock", self.stock)
        root.addLayout(form)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color:#b10000;")
        root.addWidget(self.error_label)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

        if initial_product is not None:
            p = initial_product
            self.code.setText(p.code)
            self.name.setText(p.name)
            self.desc.setText(p.description or "")
            self.unit_price.setText(str(p.unit_price))
            self.tax_rate.setText(str(p.tax_rate))
            self.stock.setValue(int(p.stock_quantity))

    def _fail(self, widget, message: str):
        self.error_label.setText(message)
        widget.setFocus()
        return None

    def get_payload(self) -> dict | None:
        if not non_empty(self.code.text()):
            return self._fail(self.code, "Code is required.")
        if not non_empty(self.name.text()):
            return self._fail(self.name, "Name is required.")
        if not is_non_negative_number(self.unit_price.text()):
            return self._fail(self.unit_price, "Unit price must be a number ≥ 0.")
        if not is_non_negative_number(self.tax_rate.text()):
            return self._fail(self.tax_rate, "VAT rate must be a number ≥ 0.")
        return {
            "code": self.code.text().strip(),
            "name": self.name.text().strip(),
            "description": self.desc.text().strip(),
            "unit_price": parse_decimal(self.unit_price.text()),
            "tax_rate": parse_decimal(self.tax_rate.text()),
            "stock_quantity": self.stock.value(),
        }

    def accept(self):
        p = self.get_payload()
        if p is None:
            return
        self._payload = p
        super().accept()

    def payload(self):
        return self._payload
