# invoice_management/database/repositories/users_repo.py
from __future__ import annotations

import sqlite3
from typing import Optional


class UsersRepo:
    """
    Data access for users and the auth audit trail.

      users(user_id, email, password_hash, name, role, is_active, is_confirmed,
            created_at, last_login, failed_attempts, locked_until)

    This repo does NOT verify passwords; AuthService does that with bcrypt
    before calling the success path.

    Lock windows use the database clock (datetime('now', '+X minutes')) unless
    an explicit 'YYYY-MM-DD HH:MM:SS' timestamp is passed, so tests can pin it.
    """

    _COLUMNS = """
        user_id, email, password_hash, name, role, is_active, is_confirmed,
        created_at, last_login, failed_attempts, locked_until
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ------------------------------ helpers ------------------------------

    @staticmethod
    def _norm_email(email: str) -> str:
        return (email or "").strip().lower()

    # ------------------------------- reads -------------------------------

    def get_user_by_email(self, email: str) -> Optional[dict]:
        row = self.conn.execute(
            f"SELECT {self._COLUMNS} FROM users WHERE email = ?", (self._norm_email(email),)
        ).fetchone()
        return dict(row) if row else None

    def get_user(self, user_id: int) -> Optional[dict]:
        row = self.conn.execute(f"SELECT {self._COLUMNS} FROM users WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def list_users(self) -> list[dict]:
        rows = self.conn.execute(
            """
            SELECT user_id, email, name, role, is_active, is_confirmed, created_at, last_login
              FROM users
             ORDER BY email
            """
        ).fetchall()
        return [dict(r) for r in rows]

    def is_locked(self, user_id: int) -> bool:
        row = self.conn.execute(
            """
            SELECT locked_until IS NOT NULL AND locked_until > datetime('now')
              FROM users WHERE user_id = ?
            """,
            (user_id,),
        ).fetchone()
        return bool(row and row[0])

    def auth_log(self, limit: int = 50) -> list[dict]:
        rows = self.conn.execute(
            "SELECT log_id, user_id, action_type, details, created_at FROM audit_logs "
            "ORDER BY log_id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------ writes -------------------------------

    def insert_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: str,
        is_active: bool = True,
        is_confirmed: bool = True,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO users(email, password_hash, name, role, is_active, is_confirmed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (self._norm_email(email), password_hash, name.strip(), role, int(is_active), int(is_confirmed)),
        )
        return int(cur.lastrowid)

    def set_flags(
        self,
        user_id: int,
        *,
        is_active: Optional[bool] = None,
        is_confirmed: Optional[bool] = None,
        role: Optional[str] = None,
    ) -> int:
        sets, params = [], []
        if is_active is not None:
            sets.append("is_active = ?")
            params.append(int(is_active))
        if is_confirmed is not None:
            sets.append("is_confirmed = ?")
            params.append(int(is_confirmed))
        if role is not None:
            sets.append("role = ?")
            params.append(role)
        if not sets:
            return 0
        cur = self.conn.execute(f"UPDATE users SET {', '.join(sets)} WHERE user_id = ?", (*params, user_id))
        return cur.rowcount

    def update_password_hash(self, user_id: int, new_hash: str) -> None:
        self.conn.execute("UPDATE users SET password_hash = ? WHERE user_id = ?", (new_hash, user_id))

    def increment_failed_attempts(
        self,
        user_id: int,
        max_attempts: int,
        lock_minutes: int,
        lock_until_ts: Optional[str] = None,
    ) -> None:
        """
        Bump failed_attempts; once it reaches max_attempts set locked_until
        (lock_until_ts if given, else DB 'now' + lock_minutes).
        """
        if max_attempts < 1:
            max_attempts = 5
        if lock_minutes < 1:
            lock_minutes = 15

        if lock_until_ts is not None:
            lock_expr, lock_param = "?", lock_until_ts
        else:
            lock_expr, lock_param = "datetime('now', ?)", f"+{int(lock_minutes)} minutes"

        self.conn.execute(
            f"""
            UPDATE users
               SET failed_attempts = failed_attempts + 1,
                   locked_until = CASE
                       WHEN (failed_attempts + 1) >= ?
                       THEN {lock_expr}
                       ELSE locked_until
                   END
             WHERE user_id = ?
            """,
            (max_attempts, lock_param, user_id),
        )

    def reset_failed_attempts_and_touch_login(self, user_id: int) -> None:
        self.conn.execute(
            """
            UPDATE users
               SET failed_attempts = 0,
                   last_login = CURRENT_TIMESTAMP,
                   locked_until = NULL
             WHERE user_id = ?
            """,
            (user_id,),
        )

    def insert_auth_log(self, email: str, success: bool, reason: str) -> None:
        """Record a sign-in/sign-up attempt; unknown emails get user_id NULL."""
        norm = self._norm_email(email)
        row = self.conn.execute("SELECT user_id FROM users WHERE email = ?", (norm,)).fetchone()
        user_id = int(row["user_id"]) if row else None
        details = f"success={1 if success else 0}; reason={reason or ''}; email={norm}"
        self.conn.execute(
            """
            INSERT INTO audit_logs (user_id, action_type, table_name, record_id, details)
            VALUES (?, 'auth', 'users', ?, ?)
            """,
            (user_id, None if user_id is None else str(user_id), details),
        )
