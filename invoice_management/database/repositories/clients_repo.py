from __future__ import annotations
from dataclasses import dataclass, fields
import sqlite3

from ...errors import NotFoundError, ValidationError
from ...utils.validators import is_email
from .row_helpers import patch_row


@dataclass
class Client:
    client_id: int | None
    name: str
    address: str = ""
    tax_id: str = ""
    phone: str = ""
    email: str = ""
    country: str = ""
    city: str = ""


_COLUMNS = [f.name for f in fields(Client)]
_EDITABLE = [c for c in _COLUMNS if c != "client_id"]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM clients"


class ClientsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize(values: dict) -> dict:
        # trim text; NULLs become empty strings to match column defaults
        return {k: (v or "").strip() for k, v in values.items()}

    @staticmethod
    def _validate(values: dict) -> None:
        if "name" in values and not values["name"]:
            raise ValidationError("Client name cannot be empty.", document="client")
        email = values.get("email")
        if email and not is_email(email):
            raise ValidationError(f"Invalid email address: {email}", document="client")

    # ---- Queries ----------------------------------------------------------

    def list_clients(self) -> list[Client]:
        rows = self.conn.execute(f"{_SELECT} ORDER BY name COLLATE NOCASE, client_id").fetchall()
        return [Client(**r) for r in rows]

    def search(self, term: str) -> list[Client]:
        """Match id, name, tax id, phone, email or city."""
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            f"{_SELECT} WHERE "
            "  CAST(client_id AS TEXT) LIKE ? OR name LIKE ? OR tax_id LIKE ? OR "
            "  phone LIKE ? OR email LIKE ? OR city LIKE ? "
            "ORDER BY name COLLATE NOCASE, client_id",
            (pattern,) * 6,
        ).fetchall()
        return [Client(**r) for r in rows]

    def get(self, client_id: int) -> Client | None:
        r = self.conn.execute(f"{_SELECT} WHERE client_id=?", (client_id,)).fetchone()
        return Client(**r) if r else None

    def require(self, client_id: int) -> Client:
        c = self.get(client_id)
        if c is None:
            raise NotFoundError(f"Client {client_id} not found.", document="client", ref=client_id)
        return c

    def names_by_id(self) -> dict[int, str]:
        rows = self.conn.execute("SELECT client_id, name FROM clients").fetchall()
        return {int(r["client_id"]): r["name"] for r in rows}

    def document_count(self, client_id: int) -> int:
        row = self.conn.execute(
            """
            SELECT (SELECT COUNT(*) FROM proforma_invoices WHERE client_id = :c)
                 + (SELECT COUNT(*) FROM final_invoices    WHERE client_id = :c)
                 + (SELECT COUNT(*) FROM delivery_notes    WHERE client_id = :c)
            """,
            {"c": client_id},
        ).fetchone()
        return int(row[0])

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str, **details: str) -> int:
        values = self._normalize({"name": name, **details})
        unknown = set(values) - set(_EDITABLE)
        if unknown:
            raise ValidationError(f"Unknown client field(s): {', '.join(sorted(unknown))}", document="client")
        self._validate(values)
        cols = list(values)
        cur = self.conn.execute(
            f"INSERT INTO clients({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})",
            [values[c] for c in cols],
        )
        return int(cur.lastrowid)

    def update(self, client_id: int, **patch: str) -> None:
        values = self._normalize(patch)
        self._validate(values)
        if patch_row(self.conn, "clients", "client_id", client_id, values, _EDITABLE) == 0 and values:
            raise NotFoundError(f"Client {client_id} not found.", document="client", ref=client_id)

    def delete(self, client_id: int) -> None:
        if self.document_count(client_id):
            raise ValidationError(
                f"Client {client_id} has documents and cannot be deleted.",
                document="client", ref=client_id, operation="delete",
            )
        self.conn.execute("DELETE FROM clients WHERE client_id=?", (client_id,))
