from ...utils.auth import hash_password

DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_ADMIN_PASSWORD = "admin123"


def seed(conn, *, with_admin: bool = True):
    # one company row so documents always have a header to print
    conn.execute(
        """
        INSERT OR IGNORE INTO company_info(company_id, business_name)
        VALUES (1, 'My Company')
        """
    )
    if not with_admin:
        return
    # if no users exist, create the first administrator
    row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
    if row and row["n"] == 0:
        conn.execute(
            """
            INSERT INTO users(email, password_hash, name, role, is_active, is_confirmed)
            VALUES (?, ?, ?, 'admin', 1, 1)
            """,
            (DEFAULT_ADMIN_EMAIL, hash_password(DEFAULT_ADMIN_PASSWORD), "Administrator"),
        )
