from decimal import Decimal

import pytest

from invoice_management.database.repositories.reporting_repo import ReportingRepo
from invoice_management.errors import ValidationError
from invoice_management.modules.invoice_utilities.workflow import FinalInvoiceWorkflow
from invoice_management.modules.reporting import build_etat104

D = Decimal


def _inv(client_id, issue_date, subtotal, tax, number=None):
    return {
        "client_id": client_id,
        "issue_date": issue_date,
        "subtotal": subtotal,
        "tax_total": tax,
        "total": D(subtotal) + D(tax),
        "number": number,
    }


def test_groups_by_client_and_filters_month():
    invoices = [
        _inv(2, "2025-03-05", "100", "19", "F-2025-0002"),
        _inv(1, "2025-03-10", "200", "38", "F-2025-0001"),
        _inv(2, "2025-03-31", "50", "9.5", "F-2025-0003"),
        _inv(1, "2025-04-01", "999", "189.81", "F-2025-0004"),
    ]
    r = build_etat104(invoices, 2025, 3, {1: "Atlas", 2: "Numidia"}, {1: "NIF-1"})

    assert [row.client_id for row in r.rows] == [1, 2]
    atlas, numidia = r.rows
    assert (atlas.client_name, atlas.tax_id, atlas.invoice_count) == ("Atlas", "NIF-1", 1)
    assert (numidia.invoice_count, numidia.subtotal, numidia.tax_total) == (2, D("150"), D("28.5"))
    assert numidia.tax_id == ""

    assert r.totals.client_id is None
    assert r.totals.invoice_count == 3
    assert r.totals.subtotal == D("350")
    assert r.totals.tax_total == D("66.5")
    assert r.totals.total == D("416.5")
    assert r.invoice_numbers == ["F-2025-0001", "F-2025-0002", "F-2025-0003"]
    assert r.period_label == "03/2025"


def test_tva_split_is_thirty_seventy():
    r = build_etat104([_inv(1, "2025-01-15", "1000", "190")], 2025, 1)
    assert r.totals.tva_deductible == D("57")
    assert r.totals.tva_due == D("133")
    assert r.totals.tva_deductible + r.totals.tva_due == r.totals.tax_total


def test_empty_month():
    r = build_etat104([_inv(1, "2025-01-15", "10", "1.9")], 2025, 2)
    assert r.is_empty
    assert r.rows == []
    assert r.totals.subtotal == 0


def test_unknown_client_gets_placeholder_name():
    r = build_etat104([_inv(7, "2025-01-15", "10", "1.9")], 2025, 1)
    assert r.rows[0].client_name == "Client 7"


@pytest.mark.parametrize("month", [0, 13])
def test_month_out_of_range(month):
    with pytest.raises(ValidationError):
        build_etat104([], 2025, month)


def test_report_from_stored_invoices(conn, accountant, client_id, other_client_id, product_id):
    """Every final invoice of the month counts, paid or not."""
    wf = FinalInvoiceWorkflow(conn, accountant)
    a = wf.create_final_invoice(client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-07-01")
    wf.create_final_invoice(other_client_id, [{"product_id": product_id, "quantity": 2}], issue_date="2025-07-31")
    wf.create_final_invoice(client_id, [{"product_id": product_id, "quantity": 5}], issue_date="2025-08-01")
    wf.mark_paid(a.final_invoice_id, "2025-07-15")

    repo = ReportingRepo(conn)
    r = repo.etat104(2025, 7)
    assert [(row.client_name, row.invoice_count) for row in r.rows] == [("Sarl Atlas", 1), ("Eurl Numidia", 1)]
    assert r.rows[0].tax_id == "000123456789012"
    assert r.totals.subtotal == D("3000")
    assert r.totals.tax_total == D("570")
    assert repo.invoice_years() == [2025]

    with pytest.raises(ValidationError):
        repo.etat104(2025, 13)


@pytest.mark.parametrize("issue_date", [None, "", "05/03/2025"])
def test_bad_issue_date_names_the_invoice(issue_date):
    with pytest.raises(ValidationError) as e:
        build_etat104([_inv(1, issue_date, "10", "1.9", "F-2025-0009")], 2025, 3)
    assert e.value.document == "etat104"
    assert e.value.ref == "F-2025-0009"
    assert "F-2025-0009" in str(e.value)
