"""
invoice_utilities/calculations.py

Pure money arithmetic for line items and document totals.

    total_excl = quantity * unit_price * (1 - discount/100)
    total_tax  = total_excl * tax_rate/100
    total      = total_excl + total_tax

    subtotal   = sum(total_excl);  tax_total = sum(total_tax)
    stamp_tax  = subtotal * tier rate   (cash payments only)
    total      = subtotal + tax_total + stamp_tax

Everything is Decimal and unrounded; round_money() is for display and export.
Do not import repos or open DB connections here.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from ...errors import ValidationError
from ...utils.validators import try_parse_decimal

__all__ = [
    "PAYMENT_TYPES",
    "PAYMENT_CHEQUE",
    "PAYMENT_CASH",
    "STAMP_TIERS",
    "LineInput",
    "LineAmounts",
    "DocumentTotals",
    "to_decimal",
    "validate_payment_type",
    "validate_line",
    "compute_line",
    "stamp_tax_rate",
    "compute_stamp_tax",
    "compute_totals",
    "round_money",
]

PAYMENT_CHEQUE = "cheque"
PAYMENT_CASH = "cash"
PAYMENT_TYPES: tuple[str, ...] = (PAYMENT_CHEQUE, PAYMENT_CASH)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# (exclusive lower bound on subtotal, rate); first match wins
STAMP_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("100000"), Decimal("0.02")),
    (Decimal("30000"), Decimal("0.015")),
    (Decimal("300"), Decimal("0.01")),
)


@dataclass(frozen=True)
class LineInput:
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    discount: Decimal = ZERO
    product_id: Optional[int] = None


@dataclass(frozen=True)
class LineAmounts:
    total_excl: Decimal
    total_tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_total: Decimal
    stamp_tax: Decimal
    total: Decimal


# -----------------------------
# Core utilities
# -----------------------------

def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Coerce ints, strings and Decimals to Decimal with the same parser the
    forms use. Floats go through str() so 0.1 stays 0.1. None, blanks,
    grouping commas, NaN and infinities raise ValidationError.
    """
    ok, d = try_parse_decimal(value)
    if not ok:
        raise ValidationError(f"{field} must be a plain number (got {value!r}).")
    return d


def round_money(value: Any) -> Decimal:
    """2 decimal places, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_payment_type(payment_type: Optional[str]) -> str:
    p = (payment_type or PAYMENT_CHEQUE).strip().lower()
    if p not in PAYMENT_TYPES:
        raise ValidationError(
            f"Payment type must be one of: {', '.join(PAYMENT_TYPES)} (got {payment_type!r})."
        )
    return p


def _get(line: Any, name: str, default: Any = None) -> Any:
    if isinstance(line, Mapping):
        return line.get(name, default)
    return getattr(line, name, default)


def validate_line(line: Any) -> LineInput:
    """
    Return a LineInput with Decimal fields, or raise ValidationError.
    quantity >= 1, unit_price >= 0, tax_rate >= 0, 0 <= discount <= 100.
    Out-of-range values are rejected, never clamped.
    """
    quantity = to_decimal(_get(line, "quantity"), "Quantity")
    unit_price = to_decimal(_get(line, "unit_price"), "Unit price")
    tax_rate = to_decimal(_get(line, "tax_rate"), "Tax rate")
    discount_raw = _get(line, "discount")
    discount = ZERO if discount_raw in (None, "") else to_decimal(discount_raw, "Discount")

    if quantity < 1:
        raise ValidationError(f"Quantity must be at least 1 (got {quantity}).")
    if unit_price < 0:
        raise ValidationError(f"Unit price cannot be negative (got {unit_price}).")
    if tax_rate < 0:
        raise ValidationError(f"Tax rate cannot be negative (got {tax_rate}).")
    if discount < 0 or discount > HUNDRED:
        raise ValidationError(f"Discount must be between 0 and 100 (got {discount}).")

    product_id = _get(line, "product_id")
    return LineInput(
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
        discount=discount,
        product_id=int(product_id) if product_id is not None else None,
    )


# -----------------------------
# Line & document math
# -----------------------------

def compute_line(line: Any) -> LineAmounts:
    v = validate_line(line)
    total_excl = v.quantity * v.unit_price * (1 - v.discount / HUNDRED)
    total_tax = total_excl * (v.tax_rate / HUNDRED)
    return LineAmounts(total_excl=total_excl, total_tax=total_tax, total=total_excl + total_tax)


def stamp_tax_rate(subtotal: Any) -> Decimal:
    """Tier rate for `subtotal`; boundaries are exclusive (300 itself pays nothing)."""
    s = to_decimal(subtotal, "Subtotal")
    for floor, rate in STAMP_TIERS:
        if s > floor:
            return rate
    return ZERO


def compute_stamp_tax(subtotal: Any, payment_type: Optional[str]) -> Decimal:
    """Stamp duty applies to cash payments only."""
    if validate_payment_type(payment_type) != PAYMENT_CASH:
        return ZERO
    s = to_decimal(subtotal, "Subtotal")
    return s * stamp_tax_rate(s)


def compute_totals(lines: Iterable[Any], payment_type: Optional[str] = PAYMENT_CHEQUE) -> DocumentTotals:
    """
    Sum line amounts and add stamp duty. Lines may be LineInput, dicts or
    any object with quantity/unit_price/tax_rate/discount attributes.
    """
    subtotal = ZERO
    tax_total = ZERO
    for line in lines:
        amounts = compute_line(line)
        subtotal += amounts.total_excl
        tax_total += amounts.total_tax
    stamp = compute_stamp_tax(subtotal, payment_type)
    return DocumentTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        stamp_tax=stamp,
        total=subtotal + tax_total + stamp,
    )
