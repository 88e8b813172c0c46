from decimal import Decimal
import sqlite3

import pytest

from invoice_management.database import get_connection
from invoice_management.database.numbering import (
    generate_delivery_note_number,
    generate_invoice_number,
    generate_proforma_number,
)
from invoice_management.database.repositories.clients_repo import ClientsRepo
from invoice_management.database.repositories.company_repo import CompanyRepo
from invoice_management.database.repositories.products_repo import ProductsRepo
from invoice_management.database.transactions import transaction
from invoice_management.errors import NotFoundError, PersistenceError, ValidationError
from invoice_management.modules.invoice_utilities.workflow import ProformaWorkflow


def test_numbers_are_per_prefix_and_year(conn):
    assert generate_proforma_number(conn, "2025-01-15") == "P-2025-0001"
    assert generate_proforma_number(conn, "2025-12-31") == "P-2025-0002"
    assert generate_proforma_number(conn, "2026-01-01") == "P-2026-0001"
    assert generate_invoice_number(conn, "2025-02-01") == "F-2025-0001"
    assert generate_delivery_note_number(conn, "2025-02-01") == "D-2025-0001"


def test_numbers_continue_after_existing_rows(conn, client_id):
    """An imported P-2025-0041 makes the next number 0042."""
    conn.execute(
        "INSERT INTO proforma_invoices(number, client_id, issue_date, due_date, subtotal, tax_total, total) "
        "VALUES ('P-2025-0041', ?, '2025-01-02', '2025-02-01', '0', '0', '0')",
        (client_id,),
    )
    assert generate_proforma_number(conn, "2025-03-01") == "P-2025-0042"


def test_numbers_not_reissued_after_delete(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    a = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-04-01")
    wf.delete(a.proforma_id)
    b = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-04-01")
    assert (a.number, b.number) == ("P-2025-0001", "P-2025-0002")


def test_transaction_rolls_back_and_wraps_store_errors(conn, client_id):
    with pytest.raises(PersistenceError) as e:
        with transaction(conn, operation="rename", document="client", ref=client_id):
            conn.execute("UPDATE clients SET name='Changed' WHERE client_id=?", (client_id,))
            conn.execute("INSERT INTO no_such_table VALUES (1)")
    assert isinstance(e.value.__cause__, sqlite3.OperationalError)
    assert ClientsRepo(conn).get(client_id).name == "Sarl Atlas"
    assert not conn.in_transaction


def test_nested_transaction_rolls_back_to_savepoint(conn, client_id):
    with transaction(conn):
        conn.execute("UPDATE clients SET city='Blida' WHERE client_id=?", (client_id,))
        with pytest.raises(ValueError):
            with transaction(conn):
                conn.execute("UPDATE clients SET city='Setif' WHERE client_id=?", (client_id,))
                raise ValueError("inner failure")
    assert ClientsRepo(conn).get(client_id).city == "Blida"


def test_get_connection_is_idempotent(tmp_path):
    path = tmp_path / "again.db"
    get_connection(path, seed_admin=True).close()
    con = get_connection(path, seed_admin=True)
    try:
        assert con.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 1
        assert con.execute("SELECT COUNT(*) FROM company_info").fetchone()[0] == 1
        assert con.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        con.close()


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

def test_client_crud_and_search(conn):
    repo = ClientsRepo(conn)
    cid = repo.create("  Sarl Atlas ", phone="021 00 00 00", email="contact@atlas.dz", city="Alger")
    assert repo.get(cid).name == "Sarl Atlas"
    repo.update(cid, city="Oran")
    assert repo.get(cid).city == "Oran"
    assert [c.client_id for c in repo.search("atlas")] == [cid]
    assert repo.search("nothing-like-this") == []
    assert repo.names_by_id() == {cid: "Sarl Atlas"}


def test_client_validation(conn):
    repo = ClientsRepo(conn)
    with pytest.raises(ValidationError):
        repo.create("   ")
    with pytest.raises(ValidationError):
        repo.create("Bad Mail", email="not-an-email")
    with pytest.raises(ValidationError):
        repo.create("Odd", favourite_colour="blue")
    with pytest.raises(NotFoundError):
        repo.update(999, city="Nowhere")


def test_client_with_documents_cannot_be_deleted(conn, sales, client_id, product_id):
    ProformaWorkflow(conn, sales).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    repo = ClientsRepo(conn)
    assert repo.document_count(client_id) == 1
    with pytest.raises(ValidationError):
        repo.delete(client_id)
    assert repo.get(client_id) is not None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def test_product_values_round_trip_as_decimal(conn):
    repo = ProductsRepo(conn)
    pid = repo.create(" P-1 ", "Paint 5L", "1499.99", "19", description="white", stock_quantity="12")
    p = repo.get(pid)
    assert p.code == "P-1"
    assert p.unit_price == Decimal("1499.99")
    assert p.tax_rate == Decimal("19")
    assert p.stock_quantity == 12


def test_product_validation(conn, product_id):
    repo = ProductsRepo(conn)
    with pytest.raises(ValidationError):
        repo.create("WID-A", "Duplicate code", "1", "19")
    with pytest.raises(ValidationError):
        repo.create("NEG", "Negative", "-1", "19")
    with pytest.raises(ValidationError):
        repo.create("FRAC", "Fractional stock", "1", "19", stock_quantity="1.5")
    with pytest.raises(ValidationError):
        repo.update(product_id, name="")
    repo.update(product_id, unit_price="1200")
    assert repo.get(product_id).unit_price == Decimal("1200")


# ---------------------------------------------------------------------------
# Company
# ---------------------------------------------------------------------------

def test_company_row_is_seeded_and_updatable(conn):
    repo = CompanyRepo(conn)
    assert repo.get().business_name == "My Company"
    repo.update(business_name="Atlas Trading", tax_id="0001112223334445")
    c = repo.get()
    assert (c.business_name, c.tax_id) == ("Atlas Trading", "0001112223334445")
