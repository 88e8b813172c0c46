from ...widgets.rows_model import RowsTableModel


class UsersTableModel(RowsTableModel):
    HEADERS = ["ID", "Email", "Name", "Role", "Active", "Confirmed", "Last login"]

    def values(self, u):
        return [
            u["user_id"],
            u["email"],
            u["name"] or "",
            u["role"],
            "Yes" if u["is_active"] else "No",
            "Yes" if u["is_confirmed"] else "Pending",
            u["last_login"] or "",
        ]


class AuthLogTableModel(RowsTableModel):
    HEADERS = ["When", "Event", "Details"]

    def values(self, r):
        return [r["created_at"], r["action_type"], r["details"] or ""]
