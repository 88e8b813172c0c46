from decimal import Decimal

import pytest
from openpyxl import load_workbook

from invoice_management.database.repositories.company_repo import CompanyInfo
from invoice_management.modules.invoice_utilities.workflow import (
    DeliveryNoteWorkflow,
    FinalInvoiceWorkflow,
    ProformaWorkflow,
)
from invoice_management.modules.reporting import build_etat104
from invoice_management.utils import document_export
from invoice_management.utils.document_export import (
    default_file_name,
    delivery_note_html,
    etat104_html,
    export_etat104_xlsx,
    final_invoice_html,
    proforma_html,
)


@pytest.fixture()
def report():
    invoices = [
        {"client_id": 1, "issue_date": "2025-03-05", "subtotal": "2000", "tax_total": "380", "total": "2400"},
        {"client_id": 2, "issue_date": "2025-03-09", "subtotal": "100", "tax_total": "19", "total": "119"},
    ]
    return build_etat104(invoices, 2025, 3, {1: "Sarl Atlas", 2: "Eurl Numidia"}, {1: "NIF-1"})


def test_default_file_name_is_filesystem_safe():
    assert default_file_name("proforma", "P-2025-0001", "pdf") == "proforma_P-2025-0001.pdf"
    assert default_file_name("etat104", "03/2025", "xlsx") == "etat104_03_2025.xlsx"


def test_proforma_html(conn, sales, client_id, product_id):
    p = ProformaWorkflow(conn, sales).create_draft(
        client_id, [{"product_id": product_id, "quantity": 2}], payment_type="cash", notes="<b>fragile</b>"
    )
    html = proforma_html(conn, p.proforma_id)
    assert "Proforma Invoice" in html
    assert p.number in html
    assert "Sarl Atlas" in html
    assert "Widget A" in html
    assert "2,400.00" in html
    assert "Stamp duty" in html
    assert "<b>fragile</b>" not in html  # autoescaped


def test_final_invoice_html_names_its_proforma(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    wf.send(p.proforma_id)
    wf.approve(p.proforma_id)
    _, f = wf.convert_to_final(p.proforma_id)
    html = final_invoice_html(conn, f.final_invoice_id)
    assert f.number in html
    assert p.number in html
    assert "Unpaid" in html


def test_delivery_note_html_has_no_prices(conn, sales, accountant, client_id, product_id):
    f = FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 3}]
    )
    d = DeliveryNoteWorkflow(conn, sales).create_delivery_note_from_invoice(f.final_invoice_id, truck_id="TR-9")
    html = delivery_note_html(conn, d.delivery_note_id)
    assert "Delivery Note" in html
    assert "TR-9" in html
    assert f.number in html
    assert "Unit price" not in html


def test_pdf_export_renders_html_through_writer(conn, sales, client_id, product_id, tmp_path, monkeypatch):
    p = ProformaWorkflow(conn, sales).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    seen = {}

    def fake_write_pdf(html, path):
        seen["html"], seen["path"] = html, path
        return path

    monkeypatch.setattr(document_export, "write_pdf", fake_write_pdf)
    out = document_export.export_proforma_pdf(conn, p.proforma_id, tmp_path / "p.pdf")
    assert out == tmp_path / "p.pdf"
    assert p.number in seen["html"]


def test_etat104_html(report):
    html = etat104_html(report, CompanyInfo(business_name="Atlas Trading", tax_id="0001"))
    assert "03/2025" in html
    assert "Atlas Trading" in html
    assert "Eurl Numidia" in html
    assert "2,100.00" in html
    assert "TVA due" in html


def test_etat104_workbook(report, tmp_path):
    path = export_etat104_xlsx(report, tmp_path / "out" / "etat104.xlsx", CompanyInfo(business_name="Atlas Trading"))
    assert path.exists()

    ws = load_workbook(path).active
    assert ws["A1"].value == "État 104 - 03/2025"
    assert ws["A4"].value == "Client ID"
    assert [ws.cell(row=r, column=2).value for r in (5, 6, 7)] == ["Sarl Atlas", "Eurl Numidia", "TOTAL"]
    assert ws.cell(row=5, column=3).value == "NIF-1"
    assert Decimal(str(ws.cell(row=7, column=5).value)) == Decimal("2100")
    assert Decimal(str(ws.cell(row=7, column=6).value)) == Decimal("399")
    # declaration summary below the table
    assert ws.cell(row=9, column=2).value == "Total sales (excl. tax)"
    assert Decimal(str(ws.cell(row=12, column=7).value)) == Decimal("279.30")
