from decimal import Decimal

import pytest

from invoice_management.errors import ValidationError
from invoice_management.modules.invoice_utilities.calculations import (
    compute_line,
    compute_stamp_tax,
    compute_totals,
    round_money,
    stamp_tax_rate,
    to_decimal,
    validate_line,
    validate_payment_type,
)
from invoice_management.utils.validators import try_parse_decimal

D = Decimal


def test_line_amounts_with_discount():
    """10% off 3 x 100 at 19% TVA."""
    a = compute_line({"quantity": 3, "unit_price": "100", "tax_rate": "19", "discount": "10"})
    assert a.total_excl == D("270")
    assert a.total_tax == D("51.3")
    assert a.total == D("321.3")


def test_line_accepts_objects_and_missing_discount():
    class Line:
        quantity = D("2")
        unit_price = D("12.50")
        tax_rate = D("9")

    a = compute_line(Line())
    assert a.total_excl == D("25")
    assert a.total_tax == D("2.25")


def test_floats_go_through_str():
    assert to_decimal(0.1) == D("0.1")


@pytest.mark.parametrize("text", ["1,000", "1,5", "1 000"])
def test_grouped_or_comma_numbers_are_rejected(text):
    """What fmt_money prints is not read back as a different amount."""
    with pytest.raises(ValidationError):
        to_decimal(text, "Unit price")
    with pytest.raises(ValidationError):
        compute_line({"quantity": 1, "unit_price": text, "tax_rate": "0"})
    assert try_parse_decimal(text) == (False, None)


@pytest.mark.parametrize(
    "line, fragment",
    [
        ({"quantity": 0, "unit_price": 1, "tax_rate": 19}, "Quantity"),
        ({"quantity": 1, "unit_price": -1, "tax_rate": 19}, "Unit price"),
        ({"quantity": 1, "unit_price": 1, "tax_rate": -5}, "Tax rate"),
        ({"quantity": 1, "unit_price": 1, "tax_rate": 19, "discount": 101}, "Discount"),
        ({"quantity": 1, "unit_price": 1, "tax_rate": 19, "discount": -1}, "Discount"),
        ({"quantity": "abc", "unit_price": 1, "tax_rate": 19}, "Quantity"),
        ({"quantity": 1, "unit_price": None, "tax_rate": 19}, "Unit price"),
    ],
)
def test_invalid_lines_are_rejected(line, fragment):
    """Out-of-range input is an error, never clamped."""
    with pytest.raises(ValidationError) as e:
        validate_line(line)
    assert fragment in str(e.value)


def test_non_finite_values_rejected():
    with pytest.raises(ValidationError):
        to_decimal("NaN")
    with pytest.raises(ValidationError):
        to_decimal("Infinity")


@pytest.mark.parametrize(
    "subtotal, rate",
    [
        ("0", "0"),
        ("300", "0"),
        ("300.01", "0.01"),
        ("30000", "0.01"),
        ("30000.01", "0.015"),
        ("100000", "0.015"),
        ("100000.01", "0.02"),
    ],
)
def test_stamp_tiers_have_exclusive_bounds(subtotal, rate):
    assert stamp_tax_rate(subtotal) == D(rate)


def test_stamp_tax_applies_to_cash_only():
    assert compute_stamp_tax("5000", "cash") == D("50")
    assert compute_stamp_tax("5000", "cheque") == D("0")
    assert compute_stamp_tax("5000", None) == D("0")


def test_unknown_payment_type():
    assert validate_payment_type(" CASH ") == "cash"
    with pytest.raises(ValidationError):
        validate_payment_type("card")


def test_document_totals_cash():
    """2 x 1000 at 19%, paid cash: stamp duty is 1% of the subtotal."""
    t = compute_totals([{"quantity": 2, "unit_price": 1000, "tax_rate": 19}], "cash")
    assert t.subtotal == D("2000")
    assert t.tax_total == D("380")
    assert t.stamp_tax == D("20")
    assert t.total == D("2400")


def test_document_totals_sum_lines():
    lines = [
        {"quantity": 1, "unit_price": "10", "tax_rate": "19"},
        {"quantity": 4, "unit_price": "2.50", "tax_rate": "9", "discount": "50"},
    ]
    t = compute_totals(lines)
    assert t.subtotal == D("15")
    assert t.tax_total == D("2.35")
    assert t.stamp_tax == 0
    assert t.total == t.subtotal + t.tax_total


def test_empty_document_totals_are_zero():
    t = compute_totals([], "cash")
    assert (t.subtotal, t.tax_total, t.stamp_tax, t.total) == (0, 0, 0, 0)


def test_round_money_half_up():
    assert round_money("2.345") == D("2.35")
    assert round_money("2.344") == D("2.34")
    assert str(round_money(5)) == "5.00"
