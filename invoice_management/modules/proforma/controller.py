from __future__ import annotations

import sqlite3
from typing import Optional

from PySide6.QtCore import QRegularExpression
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from .view import ProformaView
from .model import ProformasTableModel
from ...database.repositories.clients_repo import ClientsRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.proforma_repo import ProformaRepo, ProformaInvoice
from ...modules.invoice_utilities.status import PROFORMA, allowed_actions
from ...modules.invoice_utilities.workflow import ProformaWorkflow
from ...session import DOCUMENT_EDITORS, FINANCE_EDITORS, Session
from ...utils.document_export import default_file_name, export_proforma_pdf
from ...utils.helpers import fmt_money
from ...utils.loggers import get_logger
from ...utils.ui_helpers import ask_save_path, confirm, info, run_guarded
from ...widgets.document_form import DocumentForm
from ...widgets.rows_model import StatusFilterProxy

logger = get_logger(__name__)

# toolbar button attribute -> (workflow action, roles allowed to use it)
_ACTION_BUTTONS = {
    "btn_edit": ("edit", DOCUMENT_EDITORS),
    "btn_send": ("send", DOCUMENT_EDITORS),
    "btn_approve": ("approve", DOCUMENT_EDITORS),
    "btn_reject": ("reject", DOCUMENT_EDITORS),
    "btn_undo_approve": ("undo_approve", DOCUMENT_EDITORS),
    "btn_convert": ("convert", DOCUMENT_EDITORS),
    "btn_undo_convert": ("undo_convert", FINANCE_EDITORS),
    "btn_del": ("delete", DOCUMENT_EDITORS),
}


class ProformaController(BaseModule):
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session]):
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = ProformaRepo(conn)
        self.clients = ClientsRepo(conn)
        self.products = ProductsRepo(conn)
        self.workflow = ProformaWorkflow(conn, session)
        self.view = ProformaView()
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def _can(self, roles) -> bool:
        return self.session is not None and self.session.has_role(roles)

    # ------------------------------------------------------------------ #
    # Wiring & model
    # ------------------------------------------------------------------ #

    def _wire(self):
        v = self.view
        v.btn_add.clicked.connect(self._add)
        v.btn_edit.clicked.connect(self._edit)
        v.btn_send.clicked.connect(lambda: self._transition("send", self.workflow.send))
        v.btn_approve.clicked.connect(lambda: self._transition("approve", self.workflow.approve))
        v.btn_reject.clicked.connect(lambda: self._transition("reject", self.workflow.reject))
        v.btn_undo_approve.clicked.connect(
            lambda: self._transition("undo approval of", self.workflow.undo_approve)
        )
        v.btn_convert.clicked.connect(self._convert)
        v.btn_undo_convert.clicked.connect(self._undo_convert)
        v.btn_del.clicked.connect(self._delete)
        v.btn_pdf.clicked.connect(self._export_pdf)
        v.search.textChanged.connect(self._on_search_changed)
        v.status_filter.currentIndexChanged.connect(
            lambda _i: self.proxy.set_status_filter(v.status_filter.currentData())
        )

    def _build_model(self):
        self.base = ProformasTableModel(self.repo.list_proformas())
        self.proxy = StatusFilterProxy(self.view)
        self.proxy.setSourceModel(self.base)
        self.proxy.set_status_filter(self.view.status_filter.currentData())
        self.view.tbl.setModel(self.proxy)
        self.view.tbl.resizeColumnsToContents()
        self.view.tbl.selectionModel().selectionChanged.connect(self._on_selection_changed)

    def _reload(self, select_id: int | None = None):
        self._build_model()
        self._on_search_changed(self.view.search.text())
        if select_id is not None:
            row = self.base.find(lambda p: p.proforma_id == select_id)
            if row >= 0:
                self.view.tbl.selectRow(self.proxy.mapFromSource(self.base.index(row, 0)).row())
        elif self.proxy.rowCount() > 0:
            self.view.tbl.selectRow(0)
        self._on_selection_changed()

    def _on_search_changed(self, text: str):
        self.proxy.setFilterRegularExpression(
            QRegularExpression(QRegularExpression.escape(text), QRegularExpression.CaseInsensitiveOption)
        )

    def _selected(self) -> ProformaInvoice | None:
        idxs = self.view.tbl.selectionModel().selectedRows()
        if not idxs:
            return None
        return self.base.at(self.proxy.mapToSource(idxs[0]).row())

    def _on_selection_changed(self, *_):
        self._update_action_states()
        self._sync_details()

    def _update_action_states(self):
        p = self._selected()
        actions = allowed_actions(PROFORMA, p.status, p.converted) if p else []
        self.view.btn_add.setEnabled(self._can(DOCUMENT_EDITORS))
        for attr, (action, roles) in _ACTION_BUTTONS.items():
            getattr(self.view, attr).setEnabled(action in actions and self._can(roles))
        self.view.btn_pdf.setEnabled(p is not None)

    def _sync_details(self):
        p = self._selected()
        if p is None:
            self.view.details.clear()
            self.view.items.set_rows([])
            return
        self.view.details.set_fields(
            f"Proforma {p.number}",
            p.status,
            [
                ("Client", p.client_name),
                ("Issue date", p.issue_date),
                ("Due date", p.due_date),
                ("Payment", p.payment_type.capitalize()),
                ("Final invoice", p.final_invoice_number),
                ("Notes", p.notes),
            ],
            totals=p,
        )
        self.view.items.set_rows(self.repo.list_items(p.proforma_id))

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def _open_form(self, *, title: str, initial: dict | None = None, lines=None) -> dict | None:
        clients = self.clients.list_clients()
        if not clients:
            info(self.view, "Clients", "Create a client first.")
            return None
        dlg = DocumentForm(
            clients, self.products.list_products(), self.view,
            title=title, initial=initial, initial_lines=lines,
        )
        if not dlg.exec():
            return None
        return dlg.payload()

    def _add(self):
        payload = self._open_form(title="New proforma")
        if payload is None:
            return
        client_id = payload.pop("client_id")
        lines = payload.pop("lines")
        p = run_guarded(self.view, "New proforma", self.workflow.create_draft, client_id, lines, logger=logger, **payload)
        if p:
            info(self.view, "Saved", f"Proforma {p.number} created ({fmt_money(p.total)}).")
            self._reload(select_id=p.proforma_id)

    def _edit(self):
        p = self._selected()
        if p is None:
            return
        payload = self._open_form(
            title=f"Edit proforma {p.number}",
            initial={
                "client_id": p.client_id,
                "issue_date": p.issue_date,
                "due_date": p.due_date,
                "payment_type": p.payment_type,
                "notes": p.notes,
            },
            lines=self.repo.list_items(p.proforma_id),
        )
        if payload is None:
            return
        run_guarded(self.view, "Edit proforma", self.workflow.update_draft, p.proforma_id, logger=logger, **payload)
        self._reload(select_id=p.proforma_id)

    def _transition(self, verb: str, fn):
        p = self._selected()
        if p is None:
            return
        if not confirm(self.view, "Proforma", f"{verb.capitalize()} proforma {p.number}?"):
            return
        run_guarded(self.view, "Proforma", fn, p.proforma_id, logger=logger)
        self._reload(select_id=p.proforma_id)

    def _convert(self):
        p = self._selected()
        if p is None:
            return
        if not confirm(
            self.view, "Convert",
            f"Issue a final invoice from proforma {p.number}? Its lines move to the invoice.",
        ):
            return
        result = run_guarded(self.view, "Convert", self.workflow.convert_to_final, p.proforma_id, logger=logger)
        if result:
            _, final = result
            info(self.view, "Converted", f"Final invoice {final.number} issued.")
        self._reload(select_id=p.proforma_id)

    def _undo_convert(self):
        p = self._selected()
        if p is None:
            return
        if not confirm(
            self.view, "Undo conversion",
            f"Delete final invoice {p.final_invoice_number} and return its lines to {p.number}?",
        ):
            return
        run_guarded(self.view, "Undo conversion", self.workflow.undo_convert_to_final, p.proforma_id, logger=logger)
        self._reload(select_id=p.proforma_id)

    def _delete(self):
        p = self._selected()
        if p is None:
            return
        if not confirm(self.view, "Delete proforma", f"Delete proforma {p.number}?"):
            return
        run_guarded(self.view, "Delete proforma", self.workflow.delete, p.proforma_id, logger=logger)
        self._reload()

    def _export_pdf(self):
        p = self._selected()
        if p is None:
            return
        path = ask_save_path(
            self.view, "Export proforma", default_file_name("proforma", p.number, "pdf"), "PDF (*.pdf)"
        )
        if not path:
            return
        if run_guarded(self.view, "Export PDF", export_proforma_pdf, self.conn, p.proforma_id, path, logger=logger):
            info(self.view, "Export", f"Saved to {path}")
