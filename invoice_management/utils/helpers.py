# utils/helpers.py
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
from typing import Union, Optional

NumberLike = Union[Decimal, float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    This is the presentation boundary: values are rounded half-up here and
    nowhere earlier.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = v if isinstance(v, Decimal) else Decimal(str(v))
        if not x.is_finite():
            raise InvalidOperation(v)
    except (InvalidOperation, ValueError, TypeError) as e:
        _log.debug("fmt_money: failed to parse %r as a number: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    q = Decimal(1).scaleb(-places)
    return f"{x.quantize(q, rounding=ROUND_HALF_UP):,.{places}f}"


def fmt_percent(v: NumberLike) -> str:
    """'19' -> '19 %', '1.5' -> '1.5 %'."""
    try:
        x = Decimal(str(v)).normalize()
    except (InvalidOperation, ValueError):
        return str(v)
    return f"{x:f} %"
