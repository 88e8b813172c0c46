"""
reporting/etat104.py

Monthly TVA declaration summary (État 104) built from final invoices.

Pure: takes already-loaded invoices, returns a report object. Grouping is
by client id; the deductible/due split is a flat 30%/70% of collected TVA
until real deductible amounts are tracked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from ...errors import ValidationError
from ..invoice_utilities.calculations import to_decimal

__all__ = [
    "TVA_DEDUCTIBLE_SHARE",
    "TVA_DUE_SHARE",
    "Etat104Row",
    "Etat104Report",
    "build_etat104",
]

TVA_DEDUCTIBLE_SHARE = Decimal("0.3")
TVA_DUE_SHARE = Decimal("0.7")

ZERO = Decimal("0")


@dataclass(frozen=True)
class Etat104Row:
    client_id: Optional[int]
    client_name: str
    tax_id: str
    invoice_count: int
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal

    @property
    def tva_deductible(self) -> Decimal:
        return self.tax_total * TVA_DEDUCTIBLE_SHARE

    @property
    def tva_due(self) -> Decimal:
        return self.tax_total * TVA_DUE_SHARE


@dataclass(frozen=True)
class Etat104Report:
    year: int
    month: int
    rows: list[Etat104Row]
    totals: Etat104Row
    invoice_numbers: list[str] = field(default_factory=list)

    @property
    def period_label(self) -> str:
        return f"{self.month:02d}/{self.year}"

    @property
    def is_empty(self) -> bool:
        return self.totals.invoice_count == 0


def _get(inv: Any, name: str) -> Any:
    if isinstance(inv, Mapping):
        return inv.get(name)
    return getattr(inv, name, None)


def _period_of(value: Any, ref: object = None) -> tuple[int, int]:
    if isinstance(value, date):
        return value.year, value.month
    try:
        d = date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(
            f"Final invoice {ref if ref is not None else '?'} has no valid issue date (got {value!r}).",
            document="etat104", ref=ref, operation="etat104",
        ) from None
    return d.year, d.month


def build_etat104(
    final_invoices: Iterable[Any],
    year: int,
    month: int,
    client_names: Optional[Mapping[int, str]] = None,
    client_tax_ids: Optional[Mapping[int, str]] = None,
) -> Etat104Report:
    """
    Keep invoices issued in year/month, one row per client (sorted by client
    id) with summed subtotal, tax and total, plus a totals row. Invoices may
    be FinalInvoice objects or dicts with client_id, issue_date, subtotal,
    tax_total, total and optionally number.
    """
    year, month = int(year), int(month)
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12 (got {month}).", document="etat104")
    names = client_names or {}
    tax_ids = client_tax_ids or {}

    groups: dict[Optional[int], dict] = {}
    numbers: list[str] = []
    for inv in final_invoices:
        ref = _get(inv, "number") or _get(inv, "final_invoice_id")
        if _period_of(_get(inv, "issue_date"), ref) != (year, month):
            continue
        cid = _get(inv, "client_id")
        g = groups.setdefault(
            cid, {"n": 0, "subtotal": ZERO, "tax_total": ZERO, "total": ZERO, "name": None}
        )
        g["name"] = g["name"] or _get(inv, "client_name")
        g["n"] += 1
        g["subtotal"] += to_decimal(_get(inv, "subtotal"), "Subtotal")
        g["tax_total"] += to_decimal(_get(inv, "tax_total"), "Tax total")
        g["total"] += to_decimal(_get(inv, "total"), "Total")
        if _get(inv, "number"):
            numbers.append(_get(inv, "number"))

    rows = []
    for cid in sorted(groups, key=lambda c: (c is None, c or 0)):
        g = groups[cid]
        rows.append(
            Etat104Row(
                client_id=cid,
                client_name=names.get(cid) or g["name"] or (f"Client {cid}" if cid is not None else "Unknown"),
                tax_id=tax_ids.get(cid, ""),
                invoice_count=g["n"],
                subtotal=g["subtotal"],
                tax_total=g["tax_total"],
                total=g["total"],
            )
        )

    totals = Etat104Row(
        client_id=None,
        client_name="TOTAL",
        tax_id="",
        invoice_count=sum(r.invoice_count for r in rows),
        subtotal=sum((r.subtotal for r in rows), ZERO),
        tax_total=sum((r.tax_total for r in rows), ZERO),
        total=sum((r.total for r in rows), ZERO),
    )
    return Etat104Report(year=year, month=month, rows=rows, totals=totals, invoice_numbers=sorted(numbers))
