from __future__ import annotations

import sqlite3
from typing import Optional

from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ..login.auth_service import AuthService
from .form import UserForm
from .model import AuthLogTableModel, UsersTableModel
from .view import AdminView
from ...database.repositories.company_repo import CompanyRepo
from ...database.repositories.users_repo import UsersRepo
from ...session import Session
from ...utils.loggers import get_logger
from ...utils.ui_helpers import info, run_guarded

logger = get_logger(__name__)


class AdminController(BaseModule):
    """
    Administration screen. Every user operation goes through AuthService,
    which re-checks the session's admin role.
    """

    def __init__(self, conn: sqlite3.Connection, session: Optional[Session], auth: AuthService | None = None):
        super().__init__()
        self.conn = conn
        self.session = session
        self.auth = auth or AuthService(conn)
        self.users = UsersRepo(conn)
        self.company = CompanyRepo(conn)
        self.view = AdminView()
        self.users_model = UsersTableModel([])
        self.view.tbl_users.setModel(self.users_model)
        self.log_model = AuthLogTableModel([])
        self.view.tbl_log.setModel(self.log_model)
        self._wire()
        self._reload_users()
        self._reload_log()
        self.view.company.set_company(self.company.get())

    def get_widget(self) -> QWidget:
        return self.view

    def _wire(self):
        v = self.view
        v.btn_add_user.clicked.connect(self._add_user)
        v.btn_confirm.clicked.connect(self._confirm)
        v.btn_toggle_active.clicked.connect(self._toggle_active)
        v.btn_set_role.clicked.connect(self._set_role)
        v.btn_refresh_log.clicked.connect(self._reload_log)
        v.company.btn_save.clicked.connect(self._save_company)

    def _reload_users(self):
        rows = run_guarded(self.view, "Users", self.auth.list_users, self.session, logger=logger)
        self.users_model.replace(rows or [])
        self.view.tbl_users.resizeColumnsToContents()

    def _reload_log(self):
        self.log_model.replace(self.users.auth_log(limit=200))
        self.view.tbl_log.resizeColumnsToContents()

    def _selected_user(self) -> dict | None:
        idxs = self.view.tbl_users.selectionModel().selectedRows()
        if not idxs:
            info(self.view, "Select", "Please select a user.")
            return None
        return self.users_model.at(idxs[0].row())

    def _add_user(self):
        dlg = UserForm(self.view)
        if not dlg.exec():
            return
        uid = run_guarded(self.view, "New user", self.auth.create_user, self.session, logger=logger, **dlg.payload())
        if uid:
            info(self.view, "Saved", f"User #{uid} created.")
        self._reload_users()

    def _confirm(self):
        u = self._selected_user()
        if u is None:
            return
        run_guarded(self.view, "Confirm", self.auth.confirm_user, self.session, u["user_id"], logger=logger)
        self._reload_users()

    def _toggle_active(self):
        u = self._selected_user()
        if u is None:
            return
        run_guarded(
            self.view, "Activate", self.auth.set_user_active,
            self.session, u["user_id"], not u["is_active"], logger=logger,
        )
        self._reload_users()

    def _set_role(self):
        u = self._selected_user()
        if u is None:
            return
        run_guarded(
            self.view, "Role", self.auth.set_user_role,
            self.session, u["user_id"], self.view.cmb_role.currentData(), logger=logger,
        )
        self._reload_users()

    def _update_company(self, values: dict) -> bool:
        self.company.update(**values)
        logger.info("Company details saved by %s", self.session.email if self.session else "?")
        return True

    def _save_company(self):
        if run_guarded(self.view, "Company", self._update_company, self.view.company.values(), logger=logger):
            info(self.view, "Company", "Company details saved.")
        self.view.company.set_company(self.company.get())
