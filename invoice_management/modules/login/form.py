from PySide6.QtWidgets import QDialog, QFormLayout, QLineEdit, QDialogButtonBox, QLabel


class SignUpForm(QDialog):
    """Self-service registration; the account waits for administrator approval."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Create account")
        lay = QFormLayout(self)
        self.name = QLineEdit()
        self.email = QLineEdit()
        self.password = QLineEdit()
        self.password.setEchoMode(QLineEdit.Password)
        self.confirm = QLineEdit()
        self.confirm.setEchoMode(QLineEdit.Password)
        lay.addRow("Name", self.name)
        lay.addRow("Email", self.email)
        lay.addRow("Password", self.password)
        lay.addRow("Confirm", self.confirm)
        self.lbl_error = QLabel()
        self.lbl_error.setStyleSheet("color:#b10000;")
        self.lbl_error.setVisible(False)
        lay.addRow(self.lbl_error)
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self._check)
        self.buttons.rejected.connect(self.reject)
        lay.addRow(self.buttons)

    def _check(self):
        if self.password.text() != self.confirm.text():
            self.lbl_error.setText("Passwords do not match.")
            self.lbl_error.setVisible(True)
            return
        self.accept()

    def get_values(self) -> tuple[str, str, dict]:
        return self.email.text().strip(), self.password.text(), {"name": self.name.text().strip()}
