# utils/validators.py
import re
from decimal import Decimal, InvalidOperation

_EMAIL_RX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_ISO_DATE_RX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


def is_email(text: str) -> bool:
    return bool(text and _EMAIL_RX.match(str(text).strip()))


def is_iso_date(text: str) -> bool:
    """True for 'YYYY-MM-DD' strings that name a real calendar day."""
    from datetime import date
    if not isinstance(text, str) or not _ISO_DATE_RX.match(text):
        return False
    try:
        date.fromisoformat(text)
    except (TypeError, ValueError):
        return False
    return True


# ---- Numeric parsing & validators ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Returns:
        (ok: bool, value: Decimal|None)
    """
    if isinstance(x, bool):
        return False, None
    try:
        val = x if isinstance(x, Decimal) else Decimal(str(x).strip())
    except (InvalidOperation, ValueError, TypeError):
        return False, None
    if not val.is_finite():
        return False, None
    return True, val


def parse_decimal(x) -> Decimal:
    """
    Strict parse to Decimal; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_decimal(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a number and value >= 0.
    """
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val >= 0)
