from __future__ import annotations

import sqlite3
from typing import Optional

from PySide6.QtCore import QRegularExpression
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ..delivery.form import TransportForm
from .model import FinalInvoicesTableModel
from .payment_form import PaymentForm
from .view import FinalInvoiceView
from ...database.repositories.clients_repo import ClientsRepo
from ...database.repositories.delivery_notes_repo import DeliveryNotesRepo
from ...database.repositories.final_invoices_repo import FinalInvoice, FinalInvoicesRepo
from ...database.repositories.products_repo import ProductsRepo
from ...modules.invoice_utilities.status import FINAL_INVOICE, allowed_actions
from ...modules.invoice_utilities.workflow import DeliveryNoteWorkflow, FinalInvoiceWorkflow
from ...session import DOCUMENT_EDITORS, FINANCE_EDITORS, Session
from ...utils.document_export import default_file_name, export_final_invoice_pdf
from ...utils.helpers import fmt_money
from ...utils.loggers import get_logger
from ...utils.ui_helpers import ask_save_path, info, run_guarded
from ...widgets.document_form import DocumentForm
from ...widgets.rows_model import StatusFilterProxy

logger = get_logger(__name__)


class FinalInvoiceController(BaseModule):
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session]):
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = FinalInvoicesRepo(conn)
        self.notes = DeliveryNotesRepo(conn)
        self.clients = ClientsRepo(conn)
        self.products = ProductsRepo(conn)
        self.workflow = FinalInvoiceWorkflow(conn, session)
        self.deliveries = DeliveryNoteWorkflow(conn, session)
        self.view = FinalInvoiceView()
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def _can(self, roles) -> bool:
        return self.session is not None and self.session.has_role(roles)

    def _wire(self):
        v = self.view
        v.btn_add.clicked.connect(self._add)
        v.btn_mark_paid.clicked.connect(self._mark_paid)
        v.btn_delivery.clicked.connect(self._delivery_note)
        v.btn_pdf.clicked.connect(self._export_pdf)
        v.search.textChanged.connect(self._on_search_changed)
        v.status_filter.currentIndexChanged.connect(
            lambda _i: self.proxy.set_status_filter(v.status_filter.currentData())
        )

    def _build_model(self):
        self.base = FinalInvoicesTableModel(self.repo.list_invoices())
        self.proxy = StatusFilterProxy(self.view)
        self.proxy.setSourceModel(self.base)
        self.proxy.set_status_filter(self.view.status_filter.currentData())
        self.view.tbl.setModel(self.proxy)
        self.view.tbl.resizeColumnsToContents()
        self.view.tbl.selectionModel().selectionChanged.connect(self._on_selection_changed)

    def _reload(self, select_id: int | None = None):
        self._build_model()
        self._on_search_changed(self.view.search.text())
        row = self.base.find(lambda f: f.final_invoice_id == select_id) if select_id else -1
        if row >= 0:
            self.view.tbl.selectRow(self.proxy.mapFromSource(self.base.index(row, 0)).row())
        elif self.proxy.rowCount() > 0:
            self.view.tbl.selectRow(0)
        self._on_selection_changed()

    def _on_search_changed(self, text: str):
        self.proxy.setFilterRegularExpression(
            QRegularExpression(QRegularExpression.escape(text), QRegularExpression.CaseInsensitiveOption)
        )

    def _selected(self) -> FinalInvoice | None:
        idxs = self.view.tbl.selectionModel().selectedRows()
        if not idxs:
            return None
        return self.base.at(self.proxy.mapToSource(idxs[0]).row())

    def _on_selection_changed(self, *_):
        f = self._selected()
        actions = allowed_actions(FINAL_INVOICE, f.status) if f else []
        self.view.btn_add.setEnabled(self._can(FINANCE_EDITORS))
        self.view.btn_mark_paid.setEnabled("mark_paid" in actions and self._can(FINANCE_EDITORS))
        self.view.btn_delivery.setEnabled(f is not None and self._can(DOCUMENT_EDITORS))
        self.view.btn_pdf.setEnabled(f is not None)
        if f is None:
            self.view.details.clear()
            self.view.items.set_rows([])
            return
        deliveries = ", ".join(d.number for d in self.notes.list_for_invoice(f.final_invoice_id))
        self.view.details.set_fields(
            f"Invoice {f.number}",
            f.status,
            [
                ("Client", f.client_name),
                ("Issue date", f.issue_date),
                ("Due date", f.due_date),
                ("Payment", f.payment_type.capitalize()),
                ("Paid on", f.payment_date),
                ("Reference", f.payment_reference),
                ("From proforma", f.proforma_number),
                ("Delivery notes", deliveries),
                ("Notes", f.notes),
            ],
            totals=f,
        )
        self.view.items.set_rows(self.repo.list_items(f.final_invoice_id))

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def _add(self):
        clients = self.clients.list_clients()
        if not clients:
            info(self.view, "Clients", "Create a client first.")
            return
        dlg = DocumentForm(clients, self.products.list_products(), self.view, title="New final invoice")
        if not dlg.exec():
            return
        payload = dlg.payload()
        client_id = payload.pop("client_id")
        lines = payload.pop("lines")
        f = run_guarded(
            self.view, "New invoice", self.workflow.create_final_invoice,
            client_id, lines, logger=logger, **payload,
        )
        if f:
            info(self.view, "Saved", f"Final invoice {f.number} issued ({fmt_money(f.total)}).")
            self._reload(select_id=f.final_invoice_id)

    def _mark_paid(self):
        f = self._selected()
        if f is None:
            return
        dlg = PaymentForm(self.view, number=f.number, total=f.total, issue_date=f.issue_date)
        if not dlg.exec():
            return
        run_guarded(self.view, "Payment", self.workflow.mark_paid, f.final_invoice_id, logger=logger, **dlg.payload())
        self._reload(select_id=f.final_invoice_id)

    def _delivery_note(self):
        f = self._selected()
        if f is None:
            return
        dlg = TransportForm(self.view, title=f"Delivery note for {f.number}")
        if not dlg.exec():
            return
        d = run_guarded(
            self.view, "Delivery note", self.deliveries.create_delivery_note_from_invoice,
            f.final_invoice_id, logger=logger, **dlg.payload(),
        )
        if d:
            info(self.view, "Saved", f"Delivery note {d.number} created.")
        self._reload(select_id=f.final_invoice_id)

    def _export_pdf(self):
        f = self._selected()
        if f is None:
            return
        path = ask_save_path(
            self.view, "Export invoice", default_file_name("invoice", f.number, "pdf"), "PDF (*.pdf)"
        )
        if not path:
            return
        if run_guarded(self.view, "Export PDF", export_final_invoice_pdf, self.conn, f.final_invoice_id, path, logger=logger):
            info(self.view, "Export", f"Saved to {path}")
