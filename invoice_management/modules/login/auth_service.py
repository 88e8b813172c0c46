# invoice_management/modules/login/auth_service.py
from __future__ import annotations

import sqlite3
from typing import Any, Mapping, Optional

from ...database.repositories.users_repo import UsersRepo
from ...database.transactions import transaction
from ...errors import AuthError, NotFoundError, ValidationError
from ...session import ADMINS, ROLE_VIEWER, ROLES, Session, require_role
from ...utils.auth import hash_password, needs_rehash, password_problem, verify_password
from ...utils.loggers import get_logger
from ...utils.validators import is_email

logger = get_logger(__name__)


class AuthService:
    """
    Sign-in, sign-up and user administration over the users table.

    Holds at most one current session. Failures raise AuthError with a
    stable `code`; every attempt is written to audit_logs.
    """

    MAX_FAILED_ATTEMPTS = 5          # lock after N consecutive failures
    LOCKOUT_MINUTES = 15             # lock duration

    def __init__(self, conn: sqlite3.Connection, *, bcrypt_rounds: int = 12) -> None:
        self.conn = conn
        self.repo = UsersRepo(conn)
        self.bcrypt_rounds = bcrypt_rounds
        self._session: Optional[Session] = None

    # ----------------------------- Sessions -----------------------------

    def current_session(self) -> Optional[Session]:
        return self._session

    def sign_out(self) -> None:
        if self._session is not None:
            logger.info("User %s signed out", self._session.email)
        self._session = None

    def sign_in(self, email: str, password: str) -> Session:
        email = (email or "").strip().lower()
        if not email or not password:
            raise self._fail(email, "empty_fields", "Please enter both email and password.", log=False)

        u = self.repo.get_user_by_email(email)
        if not u:
            raise self._fail(email, "user_not_found", f"No account exists for {email}.")
        if not u["is_active"]:
            raise self._fail(email, "user_inactive", f"Account {email} is inactive. Contact an administrator.")
        if not u["is_confirmed"]:
            raise self._fail(email, "not_confirmed", f"Account {email} is waiting for administrator approval.")
        if self.repo.is_locked(int(u["user_id"])):
            raise self._fail(
                email, "locked_out",
                f"Account is locked due to repeated failures. Try again after {u['locked_until']}.",
            )

        if not verify_password(password, u["password_hash"]):
            self.repo.increment_failed_attempts(
                int(u["user_id"]),
                max_attempts=self.MAX_FAILED_ATTEMPTS,
                lock_minutes=self.LOCKOUT_MINUTES,
            )
            raise self._fail(email, "wrong_password", f"Incorrect password for {email}.")

        with transaction(self.conn, operation="sign_in", document="user", ref=email):
            self.repo.reset_failed_attempts_and_touch_login(int(u["user_id"]))
            if needs_rehash(u["password_hash"], min_rounds=self.bcrypt_rounds):
                self.repo.update_password_hash(int(u["user_id"]), hash_password(password, rounds=self.bcrypt_rounds))
            self.repo.insert_auth_log(email, True, "ok")

        self._session = Session(
            user_id=int(u["user_id"]),
            email=u["email"],
            name=u["name"],
            role=u["role"],
        )
        logger.info("User %s signed in as %s", email, u["role"])
        return self._session

    def sign_up(self, email: str, password: str, metadata: Optional[Mapping[str, Any]] = None) -> Session:
        """
        Register a viewer account that stays unconfirmed until an administrator
        approves it. The returned session is pending and cannot act.
        """
        email = (email or "").strip().lower()
        meta = dict(metadata or {})
        name = str(meta.get("name") or email.split("@")[0]).strip()
        if not email or not password:
            raise self._fail(email, "empty_fields", "Please enter both email and password.", log=False)
        if not is_email(email):
            raise self._fail(email, "invalid_email", f"{email} is not a valid email address.", log=False)
        problem = password_problem(password)
        if problem:
            raise self._fail(email, "weak_password", problem, log=False)
        if self.repo.get_user_by_email(email):
            raise self._fail(email, "email_taken", f"An account already exists for {email}.")

        with transaction(self.conn, operation="sign_up", document="user", ref=email):
            uid = self.repo.insert_user(
                email=email,
                password_hash=hash_password(password, rounds=self.bcrypt_rounds),
                name=name,
                role=ROLE_VIEWER,
                is_confirmed=False,
            )
            self.repo.insert_auth_log(email, True, "sign_up")
        logger.info("New account %s registered (pending approval)", email)
        return Session(user_id=uid, email=email, name=name, role=ROLE_VIEWER, pending=True)

    # --------------------------- Administration ---------------------------

    def _admin(self, session: Optional[Session], operation: str, ref: object = None) -> None:
        require_role(session, ADMINS, operation=operation, document="user", ref=ref)

    def list_users(self, session: Optional[Session]) -> list[dict]:
        self._admin(session, "list users")
        return self.repo.list_users()

    def create_user(
        self,
        session: Optional[Session],
        *,
        email: str,
        password: str,
        name: str,
        role: str = ROLE_VIEWER,
    ) -> int:
        """Administrator-created accounts are confirmed straight away."""
        self._admin(session, "create user")
        email = (email or "").strip().lower()
        if not is_email(email):
            raise ValidationError(f"{email or 'Email'} is not a valid email address.", document="user")
        if not (name or "").strip():
            raise ValidationError("Name cannot be empty.", document="user")
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.", document="user")
        problem = password_problem(password)
        if problem:
            raise ValidationError(problem, document="user")
        if self.repo.get_user_by_email(email):
            raise ValidationError(f"An account already exists for {email}.", document="user", ref=email)
        uid = self.repo.insert_user(
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            name=name,
            role=role,
        )
        logger.info("User %s created by %s with role %s", email, session.email, role)
        return uid

    def _set(self, session: Optional[Session], user_id: int, operation: str, **flags) -> None:
        self._admin(session, operation, user_id)
        if self.repo.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found.", document="user", ref=user_id, operation=operation)
        self.repo.set_flags(user_id, **flags)
        logger.info("User %s: %s %s by %s", user_id, operation, flags, session.email)

    def set_user_active(self, session: Optional[Session], user_id: int, active: bool) -> None:
        if session is not None and session.user_id == user_id and not active:
            raise ValidationError("You cannot deactivate your own account.", document="user", ref=user_id)
        self._set(session, user_id, "set active", is_active=active)

    def confirm_user(self, session: Optional[Session], user_id: int) -> None:
        self._set(session, user_id, "confirm", is_confirmed=True)

    def set_user_role(self, session: Optional[Session], user_id: int, role: str) -> None:
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.", document="user", ref=user_id)
        self._set(session, user_id, "change role", role=role)

    # ----------------------------- Internals -----------------------------

    def _fail(self, email: str, code: str, message: str, log: bool = True) -> AuthError:
        if log:
            self.repo.insert_auth_log(email, False, code)
        logger.warning("Authentication failed for %r: %s", email, code)
        return AuthError(code, message)
