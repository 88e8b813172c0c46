# invoice_management/database/repositories/products_repo.py
from dataclasses import dataclass
from decimal import Decimal
import sqlite3

from ...errors import NotFoundError, ValidationError
from ...modules.invoice_utilities.calculations import to_decimal
from .row_helpers import patch_row, to_dec


@dataclass
class Product:
    product_id: int | None
    code: str
    name: str
    description: str
    unit_price: Decimal
    tax_rate: Decimal
    stock_quantity: int = 0


_SELECT = (
    "SELECT product_id, code, name, description, unit_price, tax_rate, stock_quantity "
    "FROM products"
)
_EDITABLE = ("code", "name", "description", "unit_price", "tax_rate", "stock_quantity")


def _row_to_product(r: sqlite3.Row) -> Product:
    return Product(
        product_id=int(r["product_id"]),
        code=r["code"],
        name=r["name"],
        description=r["description"] or "",
        unit_price=to_dec(r["unit_price"]),
        tax_rate=to_dec(r["tax_rate"]),
        stock_quantity=int(r["stock_quantity"] or 0),
    )


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------------------------- validation ----------------------------

    def _clean(self, values: dict, product_id: int | None = None) -> dict:
        out = dict(values)
        for key in ("code", "name", "description"):
            if key in out:
                out[key] = (out[key] or "").strip()
        if "code" in out and not out["code"]:
            raise ValidationError("Product code cannot be empty.", document="product", ref=product_id)
        if "name" in out and not out["name"]:
            raise ValidationError("Product name cannot be empty.", document="product", ref=product_id)
        if "unit_price" in out:
            out["unit_price"] = to_decimal(out["unit_price"], "Unit price")
            if out["unit_price"] < 0:
                raise ValidationError("Unit price cannot be negative.", document="product", ref=product_id)
        if "tax_rate" in out:
            out["tax_rate"] = to_decimal(out["tax_rate"], "Tax rate")
            if out["tax_rate"] < 0:
                raise ValidationError("Tax rate cannot be negative.", document="product", ref=product_id)
        if "stock_quantity" in out:
            stock = to_decimal(out["stock_quantity"], "Stock quantity")
            if stock < 0 or stock != stock.to_integral_value():
                raise ValidationError(
                    "Stock quantity must be a whole number >= 0.", document="product", ref=product_id
                )
            out["stock_quantity"] = int(stock)
        if "code" in out:
            clash = self.conn.execute(
                "SELECT product_id FROM products WHERE code=? AND product_id IS NOT ?",
                (out["code"], product_id),
            ).fetchone()
            if clash:
                raise ValidationError(
                    f"Product code '{out['code']}' is already used.", document="product", ref=product_id
                )
        return out

    # ---------------------------- Products ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(f"{_SELECT} ORDER BY code").fetchall()
        return [_row_to_product(r) for r in rows]

    def search(self, term: str) -> list[Product]:
        pattern = f"%{term.strip()}%"
        rows = self.conn.execute(
            f"{_SELECT} WHERE code LIKE ? OR name LIKE ? OR description LIKE ? ORDER BY code",
            (pattern, pattern, pattern),
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(f"{_SELECT} WHERE product_id=?", (product_id,)).fetchone()
        return _row_to_product(r) if r else None

    def require(self, product_id: int) -> Product:
        p = self.get(product_id)
        if p is None:
            raise NotFoundError(f"Product {product_id} not found.", document="product", ref=product_id)
        return p

    def create(
        self,
        code: str,
        name: str,
        unit_price,
        tax_rate,
        description: str = "",
        stock_quantity=0,
    ) -> int:
        values = self._clean(
            {
                "code": code,
                "name": name,
                "description": description,
                "unit_price": unit_price,
                "tax_rate": tax_rate,
                "stock_quantity": stock_quantity,
            }
        )
        cur = self.conn.execute(
            "INSERT INTO products(code, name, description, unit_price, tax_rate, stock_quantity) "
            "VALUES (:code, :name, :description, :unit_price, :tax_rate, :stock_quantity)",
            values,
        )
        return int(cur.lastrowid)

    def update(self, product_id: int, **patch) -> None:
        values = self._clean(patch, product_id)
        if patch_row(self.conn, "products", "product_id", product_id, values, _EDITABLE) == 0 and values:
            raise NotFoundError(f"Product {product_id} not found.", document="product", ref=product_id)

    def delete(self, product_id: int) -> None:
        # line items keep their price snapshot; product_id goes NULL
        self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))
