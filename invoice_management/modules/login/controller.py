# invoice_management/modules/login/controller.py
from __future__ import annotations

import sqlite3
from typing import Optional

from ...errors import AuthError
from ...session import Session
from .auth_service import AuthService


class LoginController:
    """
    Login flow on top of AuthService.

    Public attrs (set after each attempt):
      - last_error_code: str | None
      - last_error_message: str | None
      - last_email: str | None
    """

    def __init__(self, conn: sqlite3.Connection, parent=None, auth: Optional[AuthService] = None) -> None:
        self.conn = conn
        self.parent = parent
        self.auth = auth or AuthService(conn)

        self.last_error_code: Optional[str] = None
        self.last_error_message: Optional[str] = None
        self.last_email: Optional[str] = None

    # ----------------------------- Public API -----------------------------

    def attempt(self, email: str, password: str) -> Optional[Session]:
        """One sign-in attempt without UI; failures set last_error_*."""
        self._reset_last_error()
        self.last_email = (email or "").strip()
        try:
            return self.auth.sign_in(email, password)
        except AuthError as e:
            self.last_error_code = e.code
            self.last_error_message = e.message
            return None

    def prompt(self) -> Optional[Session]:
        """
        Show the dialog until the user signs in or cancels.
        Returns the Session, or None on cancel.
        """
        from .view import LoginDialog  # lazy import to keep UI deps local

        info: Optional[str] = None
        error: Optional[str] = None
        while True:
            dlg = LoginDialog(self.parent)
            dlg.set_info(info)
            dlg.set_error(error)
            if self.last_email:
                dlg.email.setText(self.last_email)
            if not dlg.exec():
                if dlg.sign_up_requested:
                    info, error = self._sign_up()
                    continue
                self.last_error_code = "cancelled"
                self.last_error_message = "Login cancelled by user."
                return None
            email, password = dlg.get_values()
            session = self.attempt(email, password)
            if session is not None:
                return session
            info, error = None, self.last_error_message

    # ----------------------------- Internals -----------------------------

    def _sign_up(self) -> tuple[Optional[str], Optional[str]]:
        from .form import SignUpForm

        form = SignUpForm(self.parent)
        if not form.exec():
            return None, None
        email, password, meta = form.get_values()
        try:
            self.auth.sign_up(email, password, meta)
        except AuthError as e:
            return None, e.message
        self.last_email = email
        return "Account created. An administrator must approve it before you can sign in.", None

    def _reset_last_error(self) -> None:
        self.last_error_code = None
        self.last_error_message = None
        self.last_email = None
