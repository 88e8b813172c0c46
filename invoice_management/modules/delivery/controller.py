from __future__ import annotations

import sqlite3
from typing import Optional

from PySide6.QtCore import QRegularExpression
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from .form import DeliveryNoteForm
from .model import DeliveryNotesTableModel
from .view import DeliveryNoteView
from ...database.repositories.clients_repo import ClientsRepo
from ...database.repositories.delivery_notes_repo import DeliveryNote, DeliveryNotesRepo, TRANSPORT_FIELDS
from ...database.repositories.final_invoices_repo import FinalInvoicesRepo
from ...database.repositories.products_repo import ProductsRepo
from ...modules.invoice_utilities.status import DELIVERY_NOTE, allowed_actions
from ...modules.invoice_utilities.workflow import DeliveryNoteWorkflow
from ...session import DOCUMENT_EDITORS, Session
from ...utils.document_export import default_file_name, export_delivery_note_pdf
from ...utils.loggers import get_logger
from ...utils.ui_helpers import ask_save_path, confirm, info, run_guarded
from ...widgets.rows_model import StatusFilterProxy

logger = get_logger(__name__)


class DeliveryNoteController(BaseModule):
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session]):
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = DeliveryNotesRepo(conn)
        self.clients = ClientsRepo(conn)
        self.products = ProductsRepo(conn)
        self.invoices = FinalInvoicesRepo(conn)
        self.workflow = DeliveryNoteWorkflow(conn, session)
        self.view = DeliveryNoteView()
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def _editor(self) -> bool:
        return self.session is not None and self.session.has_role(DOCUMENT_EDITORS)

    def _wire(self):
        v = self.view
        v.btn_add.clicked.connect(self._add)
        v.btn_edit.clicked.connect(self._edit)
        v.btn_delivered.clicked.connect(self._mark_delivered)
        v.btn_del.clicked.connect(self._delete)
        v.btn_pdf.clicked.connect(self._export_pdf)
        v.search.textChanged.connect(self._on_search_changed)
        v.status_filter.currentIndexChanged.connect(
            lambda _i: self.proxy.set_status_filter(v.status_filter.currentData())
        )

    def _build_model(self):
        self.base = DeliveryNotesTableModel(self.repo.list_notes())
        self.proxy = StatusFilterProxy(self.view)
        self.proxy.setSourceModel(self.base)
        self.proxy.set_status_filter(self.view.status_filter.currentData())
        self.view.tbl.setModel(self.proxy)
        self.view.tbl.resizeColumnsToContents()
        self.view.tbl.selectionModel().selectionChanged.connect(self._on_selection_changed)

    def _reload(self, select_id: int | None = None):
        self._build_model()
        self._on_search_changed(self.view.search.text())
        row = self.base.find(lambda d: d.delivery_note_id == select_id) if select_id else -1
        if row >= 0:
            self.view.tbl.selectRow(self.proxy.mapFromSource(self.base.index(row, 0)).row())
        elif self.proxy.rowCount() > 0:
            self.view.tbl.selectRow(0)
        self._on_selection_changed()

    def _on_search_changed(self, text: str):
        self.proxy.setFilterRegularExpression(
            QRegularExpression(QRegularExpression.escape(text), QRegularExpression.CaseInsensitiveOption)
        )

    def _selected(self) -> DeliveryNote | None:
        idxs = self.view.tbl.selectionModel().selectedRows()
        if not idxs:
            return None
        return self.base.at(self.proxy.mapToSource(idxs[0]).row())

    def _on_selection_changed(self, *_):
        d = self._selected()
        actions = allowed_actions(DELIVERY_NOTE, d.status) if d else []
        editor = self._editor()
        self.view.btn_add.setEnabled(editor)
        self.view.btn_edit.setEnabled(editor and "edit" in actions)
        self.view.btn_delivered.setEnabled(editor and "mark_delivered" in actions)
        self.view.btn_del.setEnabled(editor and "delete" in actions)
        self.view.btn_pdf.setEnabled(d is not None)
        if d is None:
            self.view.details.clear()
            self.view.items.set_rows([])
            return
        self.view.details.set_fields(
            f"Delivery note {d.number}",
            d.status,
            [
                ("Client", d.client_name),
                ("Issue date", d.issue_date),
                ("Delivered on", d.delivery_date),
                ("Final invoice", d.final_invoice_number),
                ("Carrier", d.delivery_company),
                ("Driver", d.driver_name),
                ("Truck", d.truck_id),
                ("Notes", d.notes),
            ],
        )
        self.view.items.set_rows(self.repo.list_items(d.delivery_note_id))

    def _open_form(self, *, title: str, initial: dict | None = None, lines=None) -> dict | None:
        clients = self.clients.list_clients()
        if not clients:
            info(self.view, "Clients", "Create a client first.")
            return None
        dlg = DeliveryNoteForm(
            clients, self.products.list_products(), self.invoices.list_invoices(), self.view,
            title=title, initial=initial, initial_lines=lines,
        )
        if not dlg.exec():
            return None
        return dlg.payload()

    def _add(self):
        payload = self._open_form(title="New delivery note")
        if payload is None:
            return
        client_id = payload.pop("client_id")
        lines = payload.pop("lines")
        d = run_guarded(
            self.view, "New delivery note", self.workflow.create_delivery_note,
            client_id, lines, logger=logger, **payload,
        )
        if d:
            info(self.view, "Saved", f"Delivery note {d.number} created.")
            self._reload(select_id=d.delivery_note_id)

    def _edit(self):
        d = self._selected()
        if d is None:
            return
        initial = {
            "client_id": d.client_id,
            "final_invoice_id": d.final_invoice_id,
            "issue_date": d.issue_date,
            "delivery_date": d.delivery_date,
            "notes": d.notes,
        }
        initial.update({k: getattr(d, k) for k in TRANSPORT_FIELDS})
        payload = self._open_form(
            title=f"Edit delivery note {d.number}",
            initial=initial,
            lines=self.repo.list_items(d.delivery_note_id),
        )
        if payload is None:
            return
        payload.pop("client_id")
        run_guarded(
            self.view, "Edit delivery note", self.workflow.update_delivery_note,
            d.delivery_note_id, logger=logger, **payload,
        )
        self._reload(select_id=d.delivery_note_id)

    def _mark_delivered(self):
        d = self._selected()
        if d is None:
            return
        if not confirm(self.view, "Delivery", f"Mark {d.number} as delivered today?"):
            return
        run_guarded(self.view, "Delivery", self.workflow.mark_delivered, d.delivery_note_id, logger=logger)
        self._reload(select_id=d.delivery_note_id)

    def _delete(self):
        d = self._selected()
        if d is None:
            return
        if not confirm(self.view, "Delete delivery note", f"Delete {d.number}?"):
            return
        run_guarded(self.view, "Delete delivery note", self.workflow.delete_delivery_note, d.delivery_note_id, logger=logger)
        self._reload()

    def _export_pdf(self):
        d = self._selected()
        if d is None:
            return
        path = ask_save_path(
            self.view, "Export delivery note", default_file_name("delivery_note", d.number, "pdf"), "PDF (*.pdf)"
        )
        if not path:
            return
        if run_guarded(self.view, "Export PDF", export_delivery_note_pdf, self.conn, d.delivery_note_id, path, logger=logger):
            info(self.view, "Export", f"Saved to {path}")
