import pytest

pytest.importorskip("PySide6")

from PySide6.QtCore import Qt

from invoice_management.database.repositories.proforma_repo import ProformaRepo
from invoice_management.main import MainWindow
from invoice_management.modules.client.controller import ClientController
from invoice_management.modules.dashboard.controller import DashboardController
from invoice_management.modules.final_invoice.controller import FinalInvoiceController
from invoice_management.modules.invoice_utilities.workflow import FinalInvoiceWorkflow, ProformaWorkflow
from invoice_management.modules.proforma import controller as proforma_controller
from invoice_management.modules.proforma.controller import ProformaController
from invoice_management.modules.proforma.model import ProformasTableModel
from invoice_management.modules.reporting.etat104_tab import Etat104Tab
from invoice_management.modules.reporting.model import Etat104TableModel
from invoice_management.modules.reporting import build_etat104
from invoice_management.widgets.rows_model import StatusFilterProxy


@pytest.fixture()
def answer_yes(monkeypatch):
    """Auto-confirm dialogs and swallow info boxes on the proforma screen."""
    monkeypatch.setattr(proforma_controller, "confirm", lambda *a, **k: True)
    monkeypatch.setattr(proforma_controller, "info", lambda *a, **k: None)


def _draft(conn, session, client_id, product_id, **kw):
    return ProformaWorkflow(conn, session).create_draft(
        client_id, [{"product_id": product_id, "quantity": 1}], **kw
    )


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def test_rows_model_formats_money(qtbot, conn, sales, client_id, product_id):
    p = _draft(conn, sales, client_id, product_id)
    m = ProformasTableModel(ProformaRepo(conn).list_proformas())
    assert m.rowCount() == 1
    assert m.data(m.index(0, 0)) == p.number
    assert m.data(m.index(0, 3)) == "1,190.00"
    assert m.data(m.index(0, 3), Qt.TextAlignmentRole) == int(Qt.AlignRight | Qt.AlignVCenter)
    assert m.data(m.index(0, 4)) == "Draft"
    assert m.find(lambda r: r.number == p.number) == 0


def test_status_filter_proxy(qtbot, conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    a = _draft(conn, sales, client_id, product_id)
    _draft(conn, sales, client_id, product_id)
    wf.send(a.proforma_id)

    m = ProformasTableModel(ProformaRepo(conn).list_proformas())
    proxy = StatusFilterProxy()
    proxy.setSourceModel(m)
    assert proxy.rowCount() == 2
    proxy.set_status_filter("sent")
    assert proxy.rowCount() == 1
    proxy.set_status_filter("approved")
    assert proxy.rowCount() == 0
    proxy.set_status_filter(None)
    assert proxy.rowCount() == 2


def test_etat104_model_appends_bold_totals_row(qtbot):
    r = build_etat104(
        [{"client_id": 1, "issue_date": "2025-01-02", "subtotal": "100", "tax_total": "19", "total": "119"}],
        2025, 1, {1: "Sarl Atlas"},
    )
    m = Etat104TableModel(r)
    assert m.rowCount() == 2
    assert m.data(m.index(1, 0)) == "TOTAL"
    assert m.data(m.index(1, 0), Qt.FontRole).bold()
    assert m.data(m.index(0, 0), Qt.FontRole) is None
    m.set_report(None)
    assert m.rowCount() == 0


# ---------------------------------------------------------------------------
# Proforma screen
# ---------------------------------------------------------------------------

def test_proforma_buttons_follow_status_and_role(qtbot, conn, sales, client_id, product_id):
    _draft(conn, sales, client_id, product_id)
    ctrl = ProformaController(conn, sales)
    qtbot.addWidget(ctrl.get_widget())
    v = ctrl.view

    assert v.btn_add.isEnabled()
    assert v.btn_send.isEnabled()
    assert v.btn_edit.isEnabled()
    assert v.btn_del.isEnabled()
    assert not v.btn_approve.isEnabled()
    assert not v.btn_convert.isEnabled()
    assert v.btn_pdf.isEnabled()


def test_viewer_gets_read_only_proforma_screen(qtbot, conn, sales, viewer, client_id, product_id):
    _draft(conn, sales, client_id, product_id)
    ctrl = ProformaController(conn, viewer)
    qtbot.addWidget(ctrl.get_widget())
    v = ctrl.view
    assert not v.btn_add.isEnabled()
    assert not v.btn_send.isEnabled()
    assert not v.btn_del.isEnabled()
    assert v.btn_pdf.isEnabled()


def test_proforma_screen_runs_the_lifecycle(qtbot, conn, sales, client_id, product_id, answer_yes):
    p = _draft(conn, sales, client_id, product_id)
    ctrl = ProformaController(conn, sales)
    qtbot.addWidget(ctrl.get_widget())
    v = ctrl.view

    qtbot.mouseClick(v.btn_send, Qt.LeftButton)
    assert ProformaRepo(conn).get(p.proforma_id).status == "sent"
    qtbot.mouseClick(v.btn_approve, Qt.LeftButton)
    assert ProformaRepo(conn).get(p.proforma_id).status == "approved"
    assert v.btn_convert.isEnabled()

    qtbot.mouseClick(v.btn_convert, Qt.LeftButton)
    after = ProformaRepo(conn).get(p.proforma_id)
    assert after.final_invoice_id is not None
    assert not v.btn_convert.isEnabled()
    assert not v.btn_undo_approve.isEnabled()
    # salespeople may convert but not undo a conversion
    assert not v.btn_undo_convert.isEnabled()


def test_accountant_can_undo_conversion_from_screen(
    qtbot, conn, sales, accountant, client_id, product_id, answer_yes
):
    wf = ProformaWorkflow(conn, sales)
    p = _draft(conn, sales, client_id, product_id)
    wf.send(p.proforma_id)
    wf.approve(p.proforma_id)
    wf.convert_to_final(p.proforma_id)

    ctrl = ProformaController(conn, accountant)
    qtbot.addWidget(ctrl.get_widget())
    assert ctrl.view.btn_undo_convert.isEnabled()
    qtbot.mouseClick(ctrl.view.btn_undo_convert, Qt.LeftButton)
    assert ProformaRepo(conn).get(p.proforma_id).final_invoice_id is None


def test_status_filter_combo_filters_list(qtbot, conn, sales, client_id, product_id):
    wf = ProformaWorkflow(conn, sales)
    a = _draft(conn, sales, client_id, product_id)
    _draft(conn, sales, client_id, product_id)
    wf.send(a.proforma_id)

    ctrl = ProformaController(conn, sales)
    qtbot.addWidget(ctrl.get_widget())
    v = ctrl.view
    assert ctrl.proxy.rowCount() == 2
    v.status_filter.setCurrentIndex(v.status_filter.findData("sent"))
    assert ctrl.proxy.rowCount() == 1
    v.status_filter.setCurrentIndex(0)
    v.search.setText(a.number)
    assert ctrl.proxy.rowCount() == 1


# ---------------------------------------------------------------------------
# Other screens
# ---------------------------------------------------------------------------

def test_client_screen_lists_clients(qtbot, conn, sales, client_id, other_client_id):
    ctrl = ClientController(conn, sales)
    qtbot.addWidget(ctrl.get_widget())
    assert ctrl.proxy.rowCount() == 2
    assert "Documents: 0" in ctrl.view.details.text()
    ctrl.view.search.setText("numidia")
    assert ctrl.proxy.rowCount() == 1


def test_final_invoice_screen_gates_payment(qtbot, conn, accountant, sales, client_id, product_id):
    FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 1}]
    )
    ctrl = FinalInvoiceController(conn, accountant)
    qtbot.addWidget(ctrl.get_widget())
    assert ctrl.view.btn_mark_paid.isEnabled()

    ctrl_sales = FinalInvoiceController(conn, sales)
    qtbot.addWidget(ctrl_sales.get_widget())
    assert not ctrl_sales.view.btn_mark_paid.isEnabled()
    assert not ctrl_sales.view.btn_add.isEnabled()


def test_etat104_tab_generates_for_period(qtbot, conn, accountant, client_id, product_id):
    FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 1}], issue_date="2025-07-04"
    )
    tab = Etat104Tab(conn)
    qtbot.addWidget(tab)

    tab.spn_year.setValue(2025)
    tab.cmb_month.setCurrentIndex(tab.cmb_month.findData(6))
    tab.refresh()
    assert not tab.btn_export_xlsx.isEnabled()
    assert "No final invoices" in tab.lbl_summary.text()

    tab.cmb_month.setCurrentIndex(tab.cmb_month.findData(7))
    qtbot.mouseClick(tab.btn_generate, Qt.LeftButton)
    assert tab.period() == (2025, 7)
    assert tab.model.rowCount() == 2
    assert tab.btn_export_pdf.isEnabled()
    assert tab.btn_export_xlsx.isEnabled()
    assert "07/2025" in tab.lbl_summary.text()


def test_dashboard_kpis_and_navigation(qtbot, conn, accountant, sales, client_id, product_id):
    FinalInvoiceWorkflow(conn, accountant).create_final_invoice(
        client_id, [{"product_id": product_id, "quantity": 1}]
    )
    wf = ProformaWorkflow(conn, sales)
    p = _draft(conn, sales, client_id, product_id)
    wf.send(p.proforma_id)
    wf.approve(p.proforma_id)
    _draft(conn, sales, client_id, product_id)

    ctrl = DashboardController(conn, accountant)
    qtbot.addWidget(ctrl.get_widget())
    v = ctrl.view
    assert v.kpi_text("invoiced") == "1,190.00"
    assert v.kpi_text("outstanding") == "1,190.00"
    assert v.kpi_text("overdue") == "0"
    assert v.kpi_text("open_proformas") == "1"
    assert v.kpi_text("awaiting_conversion") == "1"

    with qtbot.waitSignal(ctrl.navigate, timeout=1000) as blocker:
        v.kpi_clicked.emit("awaiting_conversion")
    assert blocker.args == ["Proformas"]


def test_main_window_hides_admin_from_non_admins(qtbot, conn, admin, viewer):
    win = MainWindow(conn, viewer)
    qtbot.addWidget(win)
    titles = [win.nav.item(i).text() for i in range(win.nav.count())]
    assert "Administration" not in titles
    assert titles[0] == "Dashboard"
    assert win.controller("Administration") is None

    admin_win = MainWindow(conn, admin)
    qtbot.addWidget(admin_win)
    assert admin_win.controller("Administration") is not None
    assert admin_win.controller("Reporting") is not None


def test_main_window_navigates_between_modules(qtbot, conn, accountant):
    win = MainWindow(conn, accountant)
    qtbot.addWidget(win)
    win.open_module("Delivery notes")
    idx = win.nav.currentRow()
    assert win.module_info[idx]["title"] == "Delivery notes"
    assert win.modules[idx] is not None
