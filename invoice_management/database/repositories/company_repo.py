from __future__ import annotations

from dataclasses import dataclass, fields
import sqlite3

from ...errors import ValidationError
from ...utils.validators import is_email
from .row_helpers import patch_row


@dataclass
class CompanyInfo:
    business_name: str
    address: str = ""
    tax_id: str = ""
    commerce_reg_number: str = ""
    phone: str = ""
    email: str = ""


_COLUMNS = [f.name for f in fields(CompanyInfo)]


class CompanyRepo:
    """The single company_info row printed on every document header."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self) -> CompanyInfo:
        r = self.conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM company_info WHERE company_id = 1"
        ).fetchone()
        if r is None:
            return CompanyInfo(business_name="")
        return CompanyInfo(**{c: r[c] or "" for c in _COLUMNS})

    def update(self, **patch: str) -> None:
        values = {k: (v or "").strip() for k, v in patch.items()}
        if "business_name" in values and not values["business_name"]:
            raise ValidationError("Business name cannot be empty.", document="company")
        if values.get("email") and not is_email(values["email"]):
            raise ValidationError(f"Invalid email address: {values['email']}", document="company")
        self.conn.execute(
            "INSERT OR IGNORE INTO company_info(company_id, business_name) VALUES (1, 'My Company')"
        )
        patch_row(self.conn, "company_info", "company_id", 1, values, _COLUMNS)
