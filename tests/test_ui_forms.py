from decimal import Decimal

import pytest

pytest.importorskip("PySide6")

from invoice_management.database.repositories.clients_repo import ClientsRepo
from invoice_management.database.repositories.products_repo import ProductsRepo
from invoice_management.modules.client.form import ClientForm
from invoice_management.modules.delivery.form import DeliveryNoteForm, TransportForm
from invoice_management.modules.final_invoice.payment_form import PaymentForm
from invoice_management.modules.product.form import ProductForm
from invoice_management.widgets.document_form import DocumentForm
from invoice_management.widgets.line_items_editor import LineItemsEditor


def test_client_form_cleans_payload(qtbot):
    """Client name is required, inner whitespace collapses, and email is validated."""
    f = ClientForm(None)
    qtbot.addWidget(f)

    assert f.get_payload() is None
    assert "Name" in f.error_label.text()

    f.name.setText("  Sarl    Atlas  ")
    f.email.setText("contact@")
    assert f.get_payload() is None

    f.email.setText("contact@atlas.dz")
    f.city.setText(" Alger ")
    p = f.get_payload()
    assert p["name"] == "Sarl Atlas"
    assert p["email"] == "contact@atlas.dz"
    assert p["city"] == "Alger"


def test_client_form_prefills_from_initial(qtbot):
    f = ClientForm(None, initial={"name": "Eurl Numidia", "tax_id": "0009"})
    qtbot.addWidget(f)
    assert f.name.text() == "Eurl Numidia"
    assert f.get_payload()["tax_id"] == "0009"


def test_product_form_parses_decimals(qtbot):
    f = ProductForm(None)
    qtbot.addWidget(f)
    f.code.setText("WID-B")
    f.name.setText("Widget B")
    f.unit_price.setText("abc")
    f.tax_rate.setText("19")
    assert f.get_payload() is None

    f.unit_price.setText("12.50")
    f.stock.setValue(4)
    p = f.get_payload()
    assert p["unit_price"] == Decimal("12.50")
    assert p["tax_rate"] == Decimal("19")
    assert p["stock_quantity"] == 4


def test_line_items_editor_fills_catalogue_prices(qtbot, conn, product_id):
    products = ProductsRepo(conn).list_products()
    ed = LineItemsEditor(products)
    qtbot.addWidget(ed)

    ed.add_line(product_id=product_id, quantity="2")
    line = ed.lines()[0]
    assert line["product_id"] == product_id
    assert Decimal(line["unit_price"]) == Decimal("1000")
    assert Decimal(line["tax_rate"]) == Decimal("19")

    t = ed.totals("cash")
    assert t.total == Decimal("2400")

    ed.set_cell(0, ed.COL_QTY, "0")
    assert ed.totals("cash") is None

    ed.remove_current()
    assert ed.lines() == []


def test_unpriced_editor_reads_product_and_quantity_only(qtbot, conn, product_id):
    ed = LineItemsEditor(ProductsRepo(conn).list_products(), priced=False)
    qtbot.addWidget(ed)
    ed.add_line(product_id=product_id, quantity="5")
    assert ed.lines() == [{"product_id": product_id, "quantity": "5"}]


def test_document_form_requires_lines(qtbot, conn, client_id, product_id):
    clients = ClientsRepo(conn).list_clients()
    products = ProductsRepo(conn).list_products()
    f = DocumentForm(clients, products, None, title="New proforma", initial={"payment_type": "cash"})
    qtbot.addWidget(f)

    assert f.get_payload() is None
    assert "line" in f.error_label.text()

    f.items.add_line(product_id=product_id, quantity="1")
    p = f.get_payload()
    assert p["client_id"] == client_id
    assert p["payment_type"] == "cash"
    assert len(p["lines"]) == 1
    assert p["issue_date"] <= p["due_date"]
    assert "1,200.00" in f.totals.text()  # stamp duty on cash


def test_transport_form_payload(qtbot):
    f = TransportForm(None, initial={"driver_name": "Karim", "issue_date": "2025-06-01"})
    qtbot.addWidget(f)
    p = f.get_payload()
    assert p["driver_name"] == "Karim"
    assert p["issue_date"] == "2025-06-01"
    assert set(p) >= {"delivery_company", "truck_id", "notes"}


def test_delivery_note_form_payload(qtbot, conn, client_id, product_id):
    f = DeliveryNoteForm(
        ClientsRepo(conn).list_clients(), ProductsRepo(conn).list_products(), [], None,
    )
    qtbot.addWidget(f)
    assert f.get_payload() is None

    f.items.add_line(product_id=product_id, quantity="3")
    p = f.get_payload()
    assert p["client_id"] == client_id
    assert p["final_invoice_id"] is None
    assert p["delivery_date"] is None
    assert p["lines"] == [{"product_id": product_id, "quantity": "3"}]

    f.delivered.setChecked(True)
    assert f.get_payload()["delivery_date"] is not None


def test_payment_form_payload(qtbot):
    f = PaymentForm(None, number="F-2025-0001", total=Decimal("1190"), issue_date="2025-05-02")
    qtbot.addWidget(f)
    p = f.get_payload()
    assert set(p) == {"payment_date", "payment_reference"}
