from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QTabWidget, QComboBox, QLabel,
)

from ...session import ROLES
from ...widgets.table_view import TableView
from .form import CompanyForm


class AdminView(QWidget):
    """Users, company header and the sign-in audit trail."""

    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)
        self.tabs = QTabWidget()
        root.addWidget(self.tabs)

        users = QWidget()
        uv = QVBoxLayout(users)
        bar = QHBoxLayout()
        self.btn_add_user = QPushButton("New user…")
        self.btn_confirm = QPushButton("Confirm")
        self.btn_toggle_active = QPushButton("Activate / Deactivate")
        self.cmb_role = QComboBox()
        for r in ROLES:
            self.cmb_role.addItem(r.capitalize(), r)
        self.btn_set_role = QPushButton("Set role")
        for w in (self.btn_add_user, self.btn_confirm, self.btn_toggle_active):
            bar.addWidget(w)
        bar.addStretch(1)
        bar.addWidget(QLabel("Role:"))
        bar.addWidget(self.cmb_role)
        bar.addWidget(self.btn_set_role)
        uv.addLayout(bar)
        self.tbl_users = TableView()
        uv.addWidget(self.tbl_users, 1)
        self.tabs.addTab(users, "Users")

        self.company = CompanyForm()
        self.tabs.addTab(self.company, "Company")

        log = QWidget()
        lv = QVBoxLayout(log)
        self.btn_refresh_log = QPushButton("Refresh")
        lv.addWidget(self.btn_refresh_log)
        self.tbl_log = TableView()
        lv.addWidget(self.tbl_log, 1)
        self.tabs.addTab(log, "Sign-in log")
