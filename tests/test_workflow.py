from decimal import Decimal
import sqlite3

import pytest

from invoice_management.database import get_connection
from invoice_management.database.repositories.final_invoices_repo import FinalInvoicesRepo
from invoice_management.database.repositories.invoice_items_repo import InvoiceItemsRepo
from invoice_management.database.repositories.products_repo import ProductsRepo
from invoice_management.database.repositories.proforma_repo import ProformaRepo
from invoice_management.errors import (
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    PersistenceError,
    ValidationError,
)
from invoice_management.modules.invoice_utilities.status import DELIVERY_NOTE, FINAL_INVOICE, PROFORMA
from invoice_management.modules.invoice_utilities.workflow import (
    DeliveryNoteWorkflow,
    FinalInvoiceWorkflow,
    ProformaWorkflow,
    check_link_consistency,
)

D = Decimal


def _approved_proforma(wf, client_id, product_id, **kw):
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 2}], issue_date="2025-03-10", **kw)
    wf.send(p.proforma_id)
    return wf.approve(p.proforma_id)


def _sequence(conn, prefix):
    row = conn.execute("SELECT last_value FROM document_sequences WHERE prefix=?", (prefix,)).fetchone()
    return None if row is None else row[0]


# ---------------------------------------------------------------------------
# Proforma lifecycle
# ---------------------------------------------------------------------------

def test_create_draft_prices_from_catalogue(conn, sales, client_id, product_id):
    """Lines that name a product but omit price/tax take the catalogue values."""
    p = ProformaWorkflow(conn, sales).create_draft(
        client_id, [{"product_id": product_id, "quantity": 2}],
        issue_date="2025-03-10", payment_type="cash",
    )
    assert p.number == "P-2025-0001"
    assert p.status == "draft"
    assert p.due_date == "2025-04-09"
    assert (p.subtotal, p.tax_total, p.stamp_tax, p.total) == (D("2000"), D("380"), D("20"), D("2400"))
    assert p.created_by == sales.user_id

    items = ProformaRepo(conn).list_items(p.proforma_id)
    assert len(items) == 1
    assert items[0].unit_price == D("1000")
    assert items[0].product_name == "Widget A"


def test_create_draft_rejects_bad_input(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    with pytest.raises(ValidationError):
        wf.create_draft(client_id, [])
    with pytest.raises(ValidationError) as e:
        wf.create_draft(client_id, [{"product_id": product_id, "quantity": 0}])
    assert "Line 1" in str(e.value)
    with pytest.raises(ValidationError):
        wf.create_draft(9999, [{"product_id": product_id, "quantity": 1}])
    with pytest.raises(ValidationError):
        wf.create_draft(
            client_id, [{"product_id": product_id, "quantity": 1}],
            issue_date="2025-03-10", due_date="2025-03-01",
        )
    with pytest.raises(ValidationError):
        wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}], payment_type="card")
    assert ProformaRepo(conn).list_proformas() == []


def test_viewer_cannot_create(conn, viewer, client_id, product_id):
    with pytest.raises(PermissionDenied):
        ProformaWorkflow(conn, viewer).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    with pytest.raises(PermissionDenied):
        ProformaWorkflow(conn, None).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])


def test_update_draft_recomputes_totals(conn, sales, client_id, product_id, cheap_product_id):
    wf = ProformaWorkflow(conn, sales)
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-03-10")
    p = wf.update_draft(
        p.proforma_id,
        lines=[{"product_id": cheap_product_id, "quantity": 4, "unit_price": "2.50", "tax_rate": "9"}],
        notes="  urgent ",
    )
    assert p.subtotal == D("10")
    assert p.tax_total == D("0.9")
    assert p.notes == "urgent"
    assert len(ProformaRepo(conn).list_items(p.proforma_id)) == 1

    p = wf.update_draft(p.proforma_id, payment_type="cash")
    assert p.payment_type == "cash"
    assert p.stamp_tax == 0  # 10 is under the first tier


def test_only_drafts_are_editable(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    wf.send(p.proforma_id)
    with pytest.raises(InvalidTransition):
        wf.update_draft(p.proforma_id, notes="late change")


def test_send_approve_reject_and_undo(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    with pytest.raises(InvalidTransition):
        wf.approve(p.proforma_id)
    assert wf.send(p.proforma_id).status == "sent"
    assert wf.approve(p.proforma_id).status == "approved"
    assert wf.undo_approve(p.proforma_id).status == "sent"
    assert wf.reject(p.proforma_id).status == "rejected"
    with pytest.raises(InvalidTransition):
        wf.send(p.proforma_id)


def test_delete_rules(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id)
    with pytest.raises(InvalidTransition):
        wf.delete(p.proforma_id)

    d = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    wf.delete(d.proforma_id)
    assert ProformaRepo(conn).get(d.proforma_id) is None
    # item rows go with the links
    assert conn.execute("SELECT COUNT(*) FROM invoice_items").fetchone()[0] == 1


def test_missing_proforma(conn, sales):
    with pytest.raises(NotFoundError):
        ProformaWorkflow(conn, sales).send(404)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def test_convert_copies_money_and_moves_lines(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id, payment_type="cash", notes="first order")
    item_ids = InvoiceItemsRepo(conn).item_ids(PROFORMA, p.proforma_id)

    p2, f = wf.convert_to_final(p.proforma_id)

    assert f.number == "F-2025-0001"
    assert f.status == "unpaid"
    assert f.proforma_id == p.proforma_id
    assert f.proforma_number == p.number
    assert (f.issue_date, f.due_date, f.notes, f.payment_type) == (p.issue_date, p.due_date, p.notes, "cash")
    assert (f.subtotal, f.tax_total, f.stamp_tax, f.total) == (p.subtotal, p.tax_total, p.stamp_tax, p.total)

    assert p2.status == "approved"
    assert p2.final_invoice_id == f.final_invoice_id
    assert p2.final_invoice_number == f.number

    items = InvoiceItemsRepo(conn)
    assert items.item_ids(PROFORMA, p.proforma_id) == []
    assert items.item_ids(FINAL_INVOICE, f.final_invoice_id) == item_ids
    assert check_link_consistency(conn) == []

    assert FinalInvoicesRepo(conn).get_by_proforma(p.proforma_id).number == f.number
    assert FinalInvoicesRepo(conn).get_by_number(f.number).final_invoice_id == f.final_invoice_id
    assert ProformaRepo(conn).get_by_number(p.number).proforma_id == p.proforma_id
    assert ProformaRepo(conn).get_by_number("P-1999-0001") is None


def test_convert_twice_is_refused(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id)
    wf.convert_to_final(p.proforma_id)
    with pytest.raises(InvalidTransition):
        wf.convert_to_final(p.proforma_id)
    with pytest.raises(InvalidTransition):
        wf.undo_approve(p.proforma_id)
    assert len(FinalInvoicesRepo(conn).list_invoices()) == 1


def test_second_connection_cannot_convert_a_converted_proforma(conn, tmp_path, sales, client_id, product_id):
    """A stale view in another session fails cleanly once the first convert commits."""
    p = _approved_proforma(ProformaWorkflow(conn, sales), client_id, product_id)
    other = get_connection(tmp_path / "invoices.db", seed_admin=False)
    try:
        stale = ProformaRepo(other).get(p.proforma_id)
        assert stale.final_invoice_id is None

        _, f = ProformaWorkflow(conn, sales).convert_to_final(p.proforma_id)

        with pytest.raises(InvalidTransition) as e:
            ProformaWorkflow(other, sales).convert_to_final(stale.proforma_id)
        assert e.value.operation == "convert"
        assert not other.in_transaction
        assert ProformaRepo(other).get(p.proforma_id).final_invoice_id == f.final_invoice_id
        assert len(FinalInvoicesRepo(other).list_invoices()) == 1
        assert check_link_consistency(other) == []
        assert check_link_consistency(conn) == []
    finally:
        other.close()


def test_convert_requires_approval(conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = wf.create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    wf.send(p.proforma_id)
    with pytest.raises(InvalidTransition):
        wf.convert_to_final(p.proforma_id)


def test_failed_conversion_leaves_nothing_behind(conn, sales, client_id, product_id, monkeypatch):
    """A store error half-way through rolls back the invoice, the link and the number."""
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id)

    def boom(self, *args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(InvoiceItemsRepo, "move_links", boom)
    with pytest.raises(PersistenceError) as e:
        wf.convert_to_final(p.proforma_id)
    assert e.value.operation == "convert"
    assert isinstance(e.value.__cause__, sqlite3.OperationalError)

    assert conn.execute("SELECT COUNT(*) FROM final_invoices").fetchone()[0] == 0
    after = ProformaRepo(conn).get(p.proforma_id)
    assert after.status == "approved"
    assert after.final_invoice_id is None
    assert len(ProformaRepo(conn).list_items(p.proforma_id)) == 1
    assert _sequence(conn, "F-2025-") is None
    assert not conn.in_transaction


def test_undo_convert_round_trip(conn, sales, accountant, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id)
    item_ids = InvoiceItemsRepo(conn).item_ids(PROFORMA, p.proforma_id)
    _, f = wf.convert_to_final(p.proforma_id)

    with pytest.raises(PermissionDenied):
        wf.undo_convert_to_final(p.proforma_id)

    back = ProformaWorkflow(conn, accountant).undo_convert_to_final(p.proforma_id)
    assert back.status == "approved"
    assert back.final_invoice_id is None
    assert FinalInvoicesRepo(conn).get(f.final_invoice_id) is None
    assert InvoiceItemsRepo(conn).item_ids(PROFORMA, p.proforma_id) == item_ids
    assert check_link_consistency(conn) == []

    # can be converted again; invoice numbers are not re-issued
    _, f2 = wf.convert_to_final(p.proforma_id)
    assert f2.number == "F-2025-0002"


def test_undo_convert_detaches_delivery_notes(conn, sales, accountant, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    p = _approved_proforma(wf, client_id, product_id)
    _, f = wf.convert_to_final(p.proforma_id)
    note = DeliveryNoteWorkflow(conn, sales).create_delivery_note_from_invoice(f.final_invoice_id)
    assert note.final_invoice_id == f.final_invoice_id

    ProformaWorkflow(conn, accountant).undo_convert_to_final(p.proforma_id)
    note = DeliveryNoteWorkflow(conn, sales).notes.get(note.delivery_note_id)
    assert note.final_invoice_id is None


def test_undo_convert_without_conversion(conn, accountant, client_id, product_id):
    wf = ProformaWorkflow(conn, accountant)
    p = _approved_proforma(wf, client_id, product_id)
    with pytest.raises(InvalidTransition):
        wf.undo_convert_to_final(p.proforma_id)


# ---------------------------------------------------------------------------
# Final invoices
# ---------------------------------------------------------------------------

def test_direct_final_invoice_and_payment(conn, accountant, sales, client_id, product_id):
    with pytest.raises(PermissionDenied):
        FinalInvoiceWorkflow(conn, sales).create_final_invoice(
            client_id, [{"product_id": product_id, "quantity": 1}]
        )

    wf = FinalInvoiceWorkflow(conn, accountant)
    f = wf.create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-05-02",
    )
    assert f.number == "F-2025-0001"
    assert f.proforma_id is None
    assert f.total == D("1190")

    paid = wf.mark_paid(f.final_invoice_id, "2025-05-20", " CHQ-881 ")
    assert paid.status == "paid"
    assert paid.payment_date == "2025-05-20"
    assert paid.payment_reference == "CHQ-881"

    with pytest.raises(InvalidTransition):
        wf.mark_paid(f.final_invoice_id)


def test_mark_paid_validates_date(conn, accountant, client_id, product_id):
    wf = FinalInvoiceWorkflow(conn, accountant)
    f = wf.create_final_invoice(client_id, [{"product_id": product_id, "quantity": 1}])
    with pytest.raises(ValidationError):
        wf.mark_paid(f.final_invoice_id, "20/05/2025")
    assert wf.invoices.get(f.final_invoice_id).status == "unpaid"


# ---------------------------------------------------------------------------
# Delivery notes
# ---------------------------------------------------------------------------

def test_delivery_note_lifecycle(conn, sales, client_id, product_id):
    wf = DeliveryNoteWorkflow(conn, sales)
    d = wf.create_delivery_note(
        client_id,
        [{"product_id": product_id, "quantity": 3}],
        issue_date="2025-06-01",
        delivery_company=" Trans Express ",
        driver_name="",
    )
    assert d.number == "D-2025-0001"
    assert d.status == "pending"
    assert d.delivery_company == "Trans Express"
    assert d.driver_name is None

    d = wf.update_delivery_note(d.delivery_note_id, truck_id="16-123-45", notes="fragile")
    assert (d.truck_id, d.notes) == ("16-123-45", "fragile")

    d = wf.mark_delivered(d.delivery_note_id, "2025-06-03")
    assert (d.status, d.delivery_date) == ("delivered", "2025-06-03")
    with pytest.raises(InvalidTransition):
        wf.update_delivery_note(d.delivery_note_id, notes="too late")
    with pytest.raises(InvalidTransition):
        wf.delete_delivery_note(d.delivery_note_id)


def test_delivery_note_prices_are_optional(conn, sales, client_id):
    d = DeliveryNoteWorkflow(conn, sales).create_delivery_note(client_id, [{"quantity": 5}])
    items = DeliveryNoteWorkflow(conn, sales).notes.list_items(d.delivery_note_id)
    assert items[0].quantity == D("5")
    assert items[0].unit_price == 0


def test_delivery_note_rejects_unknown_fields(conn, sales, client_id):
    wf = DeliveryNoteWorkflow(conn, sales)
    with pytest.raises(ValidationError) as e:
        wf.create_delivery_note(client_id, [{"quantity": 1}], colour="red")
    assert e.value.document == DELIVERY_NOTE
    assert "colour" in str(e.value)

    d = wf.create_delivery_note(client_id, [{"quantity": 1}], truck_id="TR-1")
    with pytest.raises(ValidationError) as e:
        wf.update_delivery_note(d.delivery_note_id, trailer="T-2")
    assert e.value.operation == "edit"
    assert wf.notes.get(d.delivery_note_id).truck_id == "TR-1"


def test_delivery_note_invoice_must_match_client(
    conn, sales, accountant, client_id, other_client_id, product_id
):
    f = FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 1}]
    )
    with pytest.raises(ValidationError):
        DeliveryNoteWorkflow(conn, sales).create_delivery_note(
            other_client_id, [{"quantity": 1}], final_invoice_id=f.final_invoice_id
        )


def test_delivery_note_from_invoice_copies_lines(conn, sales, accountant, client_id, product_id):
    f = FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 7}]
    )
    wf = DeliveryNoteWorkflow(conn, sales)
    d = wf.create_delivery_note_from_invoice(f.final_invoice_id, driver_name="Karim")
    assert d.client_id == client_id
    assert d.final_invoice_number == f.number
    assert d.driver_name == "Karim"
    items = wf.notes.list_items(d.delivery_note_id)
    assert [(i.product_id, i.quantity) for i in items] == [(product_id, D("7"))]
    # the invoice keeps its own lines
    assert len(FinalInvoicesRepo(conn).list_items(f.final_invoice_id)) == 1


def test_deleted_product_keeps_line_snapshot(conn, sales, client_id, product_id):
    p = ProformaWorkflow(conn, sales).create_draft(client_id, [{"product_id": product_id, "quantity": 1}])
    ProductsRepo(conn).delete(product_id)
    items = ProformaRepo(conn).list_items(p.proforma_id)
    assert items[0].product_id is None
    assert items[0].unit_price == D("1000")
